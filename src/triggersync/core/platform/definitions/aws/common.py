# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import datetime
import logging
import time
from typing import Optional

import boto3
import botocore.credentials
import botocore.session
from botocore.exceptions import ClientError, WaiterError
from dateutil.tz import tzlocal

module_logger = logging.getLogger(__name__)

S3_SERVICE_PRINCIPAL = "s3.amazonaws.com"
LAMBDA_INVOKE_ACTION = "lambda:InvokeFunction"
S3_BUCKET_ARN_FORMAT = "arn:aws:s3:::{0}"


def get_code_for_exception(error):
    if isinstance(error, ClientError) and "Code" in error.response["Error"]:
        return error.response["Error"]["Code"]
    elif isinstance(error, WaiterError) and "Error" in error.last_response:
        return error.last_response["Error"]["Code"]
    elif hasattr(error, "error_code"):
        return error.error_code

    return error.__class__.__name__


def get_status_code_for_exception(error) -> Optional[int]:
    if isinstance(error, ClientError):
        return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", None)
    return None


# error codes the services use to report an absent entity (function, policy, statement, bucket)
AWS_NOT_FOUND_ERRORS = {
    "ResourceNotFoundException",
    "NoSuchBucket",
    "NoSuchKey",
    "NotFound",
    "404",
}


def is_not_found(error: Exception) -> bool:
    """Classify "not found" from the structured error kind returned by the service, never from the message text."""
    if not isinstance(error, ClientError):
        return False
    return get_code_for_exception(error) in AWS_NOT_FOUND_ERRORS or get_status_code_for_exception(error) == 404


def get_bucket_arn(bucket_name: str) -> str:
    return S3_BUCKET_ARN_FORMAT.format(bucket_name)


# common AWS service errors
AWS_COMMON_RETRYABLE_ERRORS = [
    "TooManyRequestsException",
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "Unavailable",
    "InternalFailure",
    "InternalError",
    "InternalServerError",
    "LimitExceededException",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "SlowDown",
    # botocore common retryable errors
    "ConnectTimeoutError",
    "ReadTimeoutError",
]


MAX_SLEEP_INTERVAL_PARAM = "_max_sleep_time_in_secs"
MAX_SLEEP_INTERVAL_DEFAULT = 64 + 1


def exponential_retry(func, service_retryable_errors, *func_args, **func_kwargs):
    """
    Retries the specified function with a simple exponential backoff algorithm.
    :param func: The function to retry.
    :param service_retryable_errors: AWS service specific retryable error codes. These are added to an internal list
                                    of AWS common retryable errors to get a final list of retryable errors. Anything else
                                    is raised without a retry.
    :param func_args: The positional arguments to pass to the function.
    :param func_kwargs: The keyword arguments to pass to the function.
    :return: The return value of the retried function.
    """
    retryables = list(AWS_COMMON_RETRYABLE_ERRORS)
    retryables.extend(service_retryable_errors)
    sleepy_time = 1
    if MAX_SLEEP_INTERVAL_PARAM in func_kwargs:
        max_sleepy_time = func_kwargs.get(MAX_SLEEP_INTERVAL_PARAM)
        del func_kwargs[MAX_SLEEP_INTERVAL_PARAM]
    else:
        max_sleepy_time = MAX_SLEEP_INTERVAL_DEFAULT
    func_return = None
    while True:
        try:
            func_return = func(*func_args, **func_kwargs)
            module_logger.debug("Ran %s, got %s.", func.__name__ if hasattr(func, "__name__") else str(func), func_return)
            break
        except Exception as error:
            error_code = get_code_for_exception(error)
            if error_code in retryables:
                module_logger.warning(f"Sleeping for {sleepy_time} secs before retrying. Retryable error_code={error_code!r}")
                time.sleep(sleepy_time)
                sleepy_time = sleepy_time * 2
                if sleepy_time < max_sleepy_time:
                    continue
            raise
    return func_return


def get_session(profile: str = None, region: str = None) -> boto3.Session:
    """
    Wrapper around boto3.Session()

    Parameters
    profile : str, named profile from the shared credentials file. System defaults (env, ~/.aws, etc) are used if None.
    region: string, AWS region

    Returns
    boto3.Session
    """
    if not profile:
        module_logger.info("Creating boto3.Session with system defaults.")
        return boto3.Session(region_name=region)

    module_logger.info("Creating boto3.Session with profile %r.", profile)
    return boto3.Session(profile_name=profile, region_name=region)


def get_assumed_role_session(role_arn: str, base_session: boto3.Session, region: str = None) -> boto3.Session:
    """Returns a session whose credentials are refreshed by re-assuming `role_arn` (via the credentials of
    `base_session`) whenever they are about to expire."""
    botocore_base_session = base_session._session
    fetcher = botocore.credentials.AssumeRoleCredentialFetcher(
        client_creator=botocore_base_session.create_client,
        source_credentials=botocore_base_session.get_credentials(),
        role_arn=role_arn,
        extra_args={
            #    'RoleSessionName': None # set this if you want something non-default
        },
    )
    creds = botocore.credentials.DeferredRefreshableCredentials(
        method="assume-role", refresh_using=fetcher.fetch_credentials, time_fetcher=lambda: datetime.datetime.now(tzlocal())
    )
    botocore_session = botocore.session.Session()
    botocore_session._credentials = creds
    return boto3.Session(botocore_session=botocore_session, region_name=region if region else base_session.region_name)
