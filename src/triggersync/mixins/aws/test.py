# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import json
import os
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from triggersync.core.errors import NotFoundRace
from triggersync.core.manifest import ServiceManifest
from triggersync.core.platform.provider import AWSProvider


def client_error(code: str, operation_name: str = "op", status_code: int = 400, message: str = "") -> ClientError:
    return ClientError(
        operation_name=operation_name,
        error_response={"Error": {"Code": code, "Message": message}, "ResponseMetadata": {"HTTPStatusCode": status_code}},
    )


class InMemoryProvider:
    """Provider double that keeps bucket notifications and function policies in memory.

    Remote operations are MagicMocks (call counts/args can be asserted, side_effects can be overridden) that by default
    behave like the services do.
    """

    def __init__(
        self,
        buckets: Optional[Dict[str, Dict[str, Any]]] = None,
        policies: Optional[Dict[str, Dict[str, Any]]] = None,
        function_arns: Optional[Dict[str, str]] = None,
        outputs: Optional[List[Dict[str, str]]] = None,
        source_account: Optional[str] = None,
    ) -> None:
        self.buckets = buckets if buckets is not None else dict()
        self.policies = policies if policies is not None else dict()
        self.function_arns = function_arns if function_arns is not None else dict()
        self.outputs = outputs
        self.source_account = source_account

        self.list_bucket_names = MagicMock(side_effect=lambda: list(self.buckets.keys()))
        self.get_notification_configuration = MagicMock(side_effect=self._get_notification_configuration)
        self.put_notification_configuration = MagicMock(side_effect=self._put_notification_configuration)
        self.get_function_arn = MagicMock(side_effect=lambda name: self.function_arns.get(name, None))
        self.get_policy = MagicMock(side_effect=self._get_policy)
        self.add_permission = MagicMock(side_effect=self._add_permission)
        self.remove_permission = MagicMock(side_effect=self._remove_permission)
        self.describe_stack_outputs = MagicMock(side_effect=lambda stack_name: self.outputs)

    def _get_notification_configuration(self, bucket_name):
        configuration = json.loads(json.dumps(self.buckets[bucket_name]))
        configuration.setdefault("LambdaFunctionConfigurations", [])
        return configuration

    def _put_notification_configuration(self, bucket_name, configuration):
        self.buckets[bucket_name] = json.loads(json.dumps(configuration))

    def _get_policy(self, function_name):
        policy = self.policies.get(function_name, None)
        return json.loads(json.dumps(policy)) if policy else None

    def _add_permission(self, function_name, statement_id, action, principal, source_arn, source_account=None):
        policy = self.policies.setdefault(function_name, {"Version": "2012-10-17", "Statement": []})
        if any(statement["Sid"] == statement_id for statement in policy["Statement"]):
            raise client_error("ResourceConflictException", "AddPermission", 409)
        statement = {
            "Sid": statement_id,
            "Effect": "Allow",
            "Principal": {"Service": principal},
            "Action": action,
            "Resource": self.function_arns.get(function_name, function_name),
            "Condition": {"ArnLike": {"AWS:SourceArn": source_arn}},
        }
        policy["Statement"].append(statement)
        return json.dumps(statement)

    def _remove_permission(self, function_name, statement_id):
        policy = self.policies.get(function_name, None)
        statements = policy["Statement"] if policy else []
        remaining = [statement for statement in statements if statement["Sid"] != statement_id]
        if len(remaining) == len(statements):
            raise NotFoundRace(f"Statement {statement_id!r} of function {function_name!r} does not exist.")
        policy["Statement"] = remaining

    def mutation_count(self) -> int:
        return self.put_notification_configuration.call_count + self.add_permission.call_count + self.remove_permission.call_count


class AWSTestBase:
    testing_keyname = "testing"
    region = "us-east-1"
    # default moto acc id
    account_id = "123456789012"

    @pytest.fixture(scope="class")
    def aws_credentials(self):
        os.environ["AWS_ACCESS_KEY_ID"] = self.testing_keyname
        os.environ["AWS_SECRET_ACCESS_KEY"] = self.testing_keyname
        os.environ["AWS_SECURITY_TOKEN"] = self.testing_keyname
        os.environ["AWS_SESSION_TOKEN"] = self.testing_keyname
        os.environ["AWS_DEFAULT_REGION"] = self.region

    @pytest.fixture()
    def mocked_aws(self, aws_credentials):
        with mock_aws():
            yield

    @pytest.fixture()
    def s3_client(self, mocked_aws):
        return boto3.client("s3", region_name=self.region)

    @pytest.fixture()
    def cfn_client(self, mocked_aws):
        return boto3.client("cloudformation", region_name=self.region)

    @pytest.fixture()
    def aws_provider(self, mocked_aws):
        return AWSProvider(boto3.Session(region_name=self.region), "dev", self.region)

    def lambda_arn(self, function_name: str) -> str:
        return f"arn:aws:lambda:{self.region}:{self.account_id}:function:{function_name}"


def build_manifest(functions, service="svc", stage="dev", **provider) -> ServiceManifest:
    return ServiceManifest({"service": service, "provider": dict(name="aws", **provider), "functions": functions}, stage)


def existing_s3(bucket, events=None, rules=None, **kwargs) -> Dict[str, Any]:
    declaration = dict(bucket=bucket, **kwargs)
    if events is not None:
        declaration["events"] = events
    if rules is not None:
        declaration["rules"] = rules
    return {"existingS3": declaration}
