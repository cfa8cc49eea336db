# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

"""
Refer
https://github.com/awsdocs/aws-doc-sdk-examples/blob/master/python/example_code/s3/s3_basics/bucket_wrapper.py
"""

# keys of a bucket notification document that can be sent back in a put call
NOTIFICATION_CONFIGURATION_KEYS = [
    "TopicConfigurations",
    "QueueConfigurations",
    "LambdaFunctionConfigurations",
    "EventBridgeConfiguration",
]


def list_bucket_names(s3_client) -> Optional[List[str]]:
    """
    Get the names of the buckets owned by the caller's account (in all Regions).
    :return: The list of bucket names or None if the service response does not contain a bucket listing.
    """
    try:
        response = s3_client.list_buckets()
    except ClientError:
        logger.exception("Couldn't get buckets.")
        raise

    if not response or response.get("Buckets", None) is None:
        return None

    names = [bucket["Name"] for bucket in response["Buckets"]]
    # accounts with many buckets are paginated on newer API versions
    continuation_token = response.get("ContinuationToken", None)
    while continuation_token:
        response = s3_client.list_buckets(ContinuationToken=continuation_token)
        names.extend([bucket["Name"] for bucket in response.get("Buckets", [])])
        continuation_token = response.get("ContinuationToken", None)

    logger.info("Got %d buckets.", len(names))
    return names


def get_notification_configuration(s3_client, bucket_name: str) -> Optional[Dict[str, Any]]:
    """ref:
    https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/s3/client/get_bucket_notification_configuration.html

    Returns the notification document stripped from transport metadata, with an (at least empty)
    'LambdaFunctionConfigurations' list. None if the service returned nothing.
    Requires:
    ["s3:GetBucketNotificationConfiguration"]
    """
    try:
        response = s3_client.get_bucket_notification_configuration(Bucket=bucket_name)
    except ClientError as err:
        logger.exception("Couldn't get bucket notification! bucket %s. Error: %s", bucket_name, str(err))
        raise

    if response is None:
        return None

    configuration = {key: response[key] for key in NOTIFICATION_CONFIGURATION_KEYS if response.get(key, None) is not None}
    configuration.setdefault("LambdaFunctionConfigurations", [])
    return configuration


def put_notification_configuration(s3_client, bucket_name: str, configuration: Dict[str, Any], expected_bucket_owner: str = None):
    """ref:
    https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/s3/client/put_bucket_notification_configuration.html

    Replaces the whole notification document of the bucket. S3 has no partial update for this resource.
    Requires:
    ["s3:PutBucketNotificationConfiguration"]
    """
    data = {key: configuration[key] for key in NOTIFICATION_CONFIGURATION_KEYS if configuration.get(key, None) is not None}
    kwargs = {"Bucket": bucket_name, "NotificationConfiguration": data}
    if expected_bucket_owner:
        kwargs.update({"ExpectedBucketOwner": expected_bucket_owner})
    try:
        response = s3_client.put_bucket_notification_configuration(**kwargs)
        logger.info("Bucket notification updated successfully! bucket: %s notification_conf: %s.", bucket_name, data)
        return response
    except ClientError as err:
        logger.exception("Couldn't update bucket notification! bucket %s. Error: %s", bucket_name, str(err))
        raise
