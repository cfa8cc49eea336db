# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Any, ClassVar, Dict, List, Optional, Set

import boto3
from botocore.exceptions import ClientError

from triggersync.core.errors import NotFoundRace
from triggersync.core.platform.definitions.aws.aws_lambda.client_wrapper import add_permission, get_lambda_arn, get_policy, remove_permission
from triggersync.core.platform.definitions.aws.cloudformation.client_wrapper import describe_stack_outputs
from triggersync.core.platform.definitions.aws.common import exponential_retry, get_session, is_not_found
from triggersync.core.platform.definitions.aws.s3.bucket_wrapper import (
    get_notification_configuration,
    list_bucket_names,
    put_notification_configuration,
)

logger = logging.getLogger(__name__)


class AWSProvider:
    """Remote operations the reconcilers need, bound to one stage/region execution context.

    Every call is retried on throttling/transient service errors. "Not found" is classified here, from the structured
    error code, and surfaced either as an empty result (reads) or as :class:`NotFoundRace` (removals).

    Clients are created once, in the thread that creates the provider, and then shared across the worker threads of a
    run (boto3 clients are thread-safe, sessions are not).
    """

    S3_RETRYABLE_EXCEPTION_LIST: ClassVar[Set[str]] = {"OperationAborted"}
    LAMBDA_RETRYABLE_EXCEPTION_LIST: ClassVar[Set[str]] = {"ServiceException"}
    CFN_RETRYABLE_EXCEPTION_LIST: ClassVar[Set[str]] = set()

    def __init__(self, session: boto3.Session, stage: str, region: str, source_account: Optional[str] = None) -> None:
        self._session = session
        self._stage = stage
        self._region = region
        self._source_account = source_account
        self._s3 = self._session.client(service_name="s3", region_name=self._region)
        self._lambda = self._session.client(service_name="lambda", region_name=self._region)
        self._cfn = self._session.client(service_name="cloudformation", region_name=self._region)

    @classmethod
    def create(cls, stage: str, region: str, profile: str = None, source_account: str = None) -> "AWSProvider":
        return cls(get_session(profile, region), stage, region, source_account)

    @property
    def stage(self) -> str:
        return self._stage

    @property
    def region(self) -> str:
        return self._region

    @property
    def source_account(self) -> Optional[str]:
        return self._source_account

    # S3
    def list_bucket_names(self) -> Optional[List[str]]:
        return exponential_retry(list_bucket_names, self.S3_RETRYABLE_EXCEPTION_LIST, self._s3)

    def get_notification_configuration(self, bucket_name: str) -> Optional[Dict[str, Any]]:
        return exponential_retry(get_notification_configuration, self.S3_RETRYABLE_EXCEPTION_LIST, self._s3, bucket_name)

    def put_notification_configuration(self, bucket_name: str, configuration: Dict[str, Any]) -> None:
        exponential_retry(
            put_notification_configuration, self.S3_RETRYABLE_EXCEPTION_LIST, self._s3, bucket_name, configuration, self._source_account
        )

    # Lambda
    def get_function_arn(self, function_name: str) -> Optional[str]:
        return exponential_retry(get_lambda_arn, self.LAMBDA_RETRYABLE_EXCEPTION_LIST, self._lambda, function_name)

    def get_policy(self, function_name: str) -> Optional[Dict[str, Any]]:
        """Returns the parsed policy document of the function, None if the function has no policy at all."""
        try:
            return exponential_retry(get_policy, self.LAMBDA_RETRYABLE_EXCEPTION_LIST, self._lambda, function_name)
        except ClientError as error:
            if is_not_found(error):
                logger.info("Function %s has no resource policy yet.", function_name)
                return None
            raise

    def add_permission(
        self, function_name: str, statement_id: str, action: str, principal: str, source_arn: str, source_account: str = None
    ) -> Dict[str, Any]:
        return exponential_retry(
            add_permission,
            self.LAMBDA_RETRYABLE_EXCEPTION_LIST,
            self._lambda,
            function_name,
            statement_id,
            action,
            principal,
            source_arn,
            source_account,
        )

    def remove_permission(self, function_name: str, statement_id: str) -> None:
        """Raises :class:`NotFoundRace` if the statement (or the function) is already gone."""
        try:
            exponential_retry(remove_permission, self.LAMBDA_RETRYABLE_EXCEPTION_LIST, self._lambda, function_name, statement_id)
        except ClientError as error:
            if is_not_found(error):
                raise NotFoundRace(f"Statement {statement_id!r} of function {function_name!r} does not exist.") from error
            raise

    # CloudFormation
    def describe_stack_outputs(self, stack_name: str) -> Optional[List[Dict[str, str]]]:
        return exponential_retry(describe_stack_outputs, self.CFN_RETRYABLE_EXCEPTION_LIST, self._cfn, stack_name)
