# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import json

import pytest
from botocore.exceptions import ClientError
from mock import ANY, MagicMock

import triggersync.core.platform.definitions.aws.common as common
from triggersync.core.deployment import gather_stack_outputs
from triggersync.core.errors import NotFoundRace
from triggersync.core.platform.definitions.aws.s3.bucket_wrapper import put_notification_configuration
from triggersync.mixins.aws.test import AWSTestBase, client_error

STACK_TEMPLATE = {
    "AWSTemplateFormatVersion": "2010-09-09",
    "Resources": {"DeploymentBucket": {"Type": "AWS::S3::Bucket"}},
    "Outputs": {
        "F1LambdaFunctionQualifiedArn": {"Value": "arn:aws:lambda:us-east-1:123456789012:function:svc-dev-f1:3"},
        "ServiceEndpoint": {"Value": "https://example.com/dev"},
    },
}


class TestAWSProviderS3(AWSTestBase):
    def test_list_bucket_names(self, aws_provider, s3_client):
        for bucket in ["b1", "b2"]:
            s3_client.create_bucket(Bucket=bucket)
        assert sorted(aws_provider.list_bucket_names()) == ["b1", "b2"]

    def test_get_empty_notification_configuration(self, aws_provider, s3_client):
        s3_client.create_bucket(Bucket="b1")
        assert aws_provider.get_notification_configuration("b1") == {"LambdaFunctionConfigurations": []}

    def test_notification_configuration_round_trip(self, aws_provider, s3_client):
        s3_client.create_bucket(Bucket="b1")
        configuration = {
            "LambdaFunctionConfigurations": [
                {"Id": "trigger-f1-when-s3ObjectCreated", "LambdaFunctionArn": self.lambda_arn("svc-dev-f1"), "Events": ["s3:ObjectCreated:*"]}
            ]
        }
        aws_provider.put_notification_configuration("b1", configuration)

        remote = aws_provider.get_notification_configuration("b1")
        assert "ResponseMetadata" not in remote
        assert len(remote["LambdaFunctionConfigurations"]) == 1
        remote_entry = remote["LambdaFunctionConfigurations"][0]
        assert remote_entry["Id"] == "trigger-f1-when-s3ObjectCreated"
        assert remote_entry["LambdaFunctionArn"] == self.lambda_arn("svc-dev-f1")
        assert remote_entry["Events"] == ["s3:ObjectCreated:*"]

    def test_get_notification_configuration_of_missing_bucket(self, aws_provider):
        with pytest.raises(ClientError) as error:
            aws_provider.get_notification_configuration("missing")
        assert common.is_not_found(error.value)

    def test_put_notification_configuration_drops_unknown_keys(self):
        s3_client = MagicMock()
        put_notification_configuration(
            s3_client,
            "b1",
            {"LambdaFunctionConfigurations": [], "EventBridgeConfiguration": {}, "ResponseMetadata": {"HTTPStatusCode": 200}},
            "111222333444",
        )
        s3_client.put_bucket_notification_configuration.assert_called_once_with(
            Bucket="b1",
            NotificationConfiguration={"LambdaFunctionConfigurations": [], "EventBridgeConfiguration": {}},
            ExpectedBucketOwner="111222333444",
        )


class TestAWSProviderCloudFormation(AWSTestBase):
    def test_describe_stack_outputs(self, aws_provider, cfn_client):
        cfn_client.create_stack(StackName="svc-dev", TemplateBody=json.dumps(STACK_TEMPLATE))
        outputs = aws_provider.describe_stack_outputs("svc-dev")
        assert {output["OutputKey"]: output["OutputValue"] for output in outputs} == {
            "F1LambdaFunctionQualifiedArn": "arn:aws:lambda:us-east-1:123456789012:function:svc-dev-f1:3",
            "ServiceEndpoint": "https://example.com/dev",
        }

    def test_describe_missing_stack(self, aws_provider):
        assert aws_provider.describe_stack_outputs("svc-dev") is None

    def test_gather_stack_outputs_of_missing_stack(self, aws_provider):
        assert gather_stack_outputs(aws_provider, "svc-dev") == []


class TestAWSProviderLambda(AWSTestBase):
    @pytest.fixture()
    def lambda_client(self, aws_provider):
        aws_provider._lambda = MagicMock()
        return aws_provider._lambda

    @pytest.fixture(autouse=True)
    def no_sleep(self, monkeypatch):
        monkeypatch.setattr(common.time, "sleep", MagicMock())

    def test_get_function_arn(self, aws_provider, lambda_client):
        lambda_client.get_function.return_value = {"Configuration": {"FunctionArn": self.lambda_arn("svc-dev-f1")}}
        assert aws_provider.get_function_arn("svc-dev-f1") == self.lambda_arn("svc-dev-f1")
        lambda_client.get_function.assert_called_once_with(FunctionName="svc-dev-f1")

    def test_get_function_arn_of_missing_function(self, aws_provider, lambda_client):
        lambda_client.get_function.side_effect = client_error("ResourceNotFoundException", "GetFunction", 404)
        assert aws_provider.get_function_arn("svc-dev-f1") is None

    def test_get_policy(self, aws_provider, lambda_client):
        policy = {"Version": "2012-10-17", "Statement": [{"Sid": "svc-dev-f1-b1"}]}
        lambda_client.get_policy.return_value = {"Policy": json.dumps(policy), "RevisionId": "1"}
        assert aws_provider.get_policy("svc-dev-f1") == policy

    def test_get_policy_of_function_without_policy(self, aws_provider, lambda_client):
        lambda_client.get_policy.side_effect = client_error("ResourceNotFoundException", "GetPolicy", 404)
        assert aws_provider.get_policy("svc-dev-f1") is None

    def test_get_policy_errors_propagate(self, aws_provider, lambda_client):
        lambda_client.get_policy.side_effect = client_error("AccessDeniedException", "GetPolicy", 403)
        with pytest.raises(ClientError):
            aws_provider.get_policy("svc-dev-f1")

    def test_get_policy_retries_throttling(self, aws_provider, lambda_client):
        lambda_client.get_policy.side_effect = [
            client_error("TooManyRequestsException", "GetPolicy", 429),
            {"Policy": json.dumps({"Statement": []})},
        ]
        assert aws_provider.get_policy("svc-dev-f1") == {"Statement": []}
        assert lambda_client.get_policy.call_count == 2

    def test_add_permission(self, aws_provider, lambda_client):
        lambda_client.add_permission.return_value = {"Statement": "{}"}
        aws_provider.add_permission(
            "svc-dev-f1", "svc-dev-f1-b1", "lambda:InvokeFunction", "s3.amazonaws.com", "arn:aws:s3:::b1", "111222333444"
        )
        lambda_client.add_permission.assert_called_once_with(
            FunctionName="svc-dev-f1",
            StatementId="svc-dev-f1-b1",
            Action="lambda:InvokeFunction",
            Principal="s3.amazonaws.com",
            SourceArn="arn:aws:s3:::b1",
            SourceAccount="111222333444",
        )

    def test_add_permission_conflict_is_not_retried(self, aws_provider, lambda_client):
        lambda_client.add_permission.side_effect = client_error("ResourceConflictException", "AddPermission", 409)
        with pytest.raises(ClientError):
            aws_provider.add_permission("svc-dev-f1", "svc-dev-f1-b1", "lambda:InvokeFunction", "s3.amazonaws.com", "arn:aws:s3:::b1")
        assert lambda_client.add_permission.call_count == 1

    def test_remove_permission(self, aws_provider, lambda_client):
        aws_provider.remove_permission("svc-dev-f1", "svc-dev-f1-b1")
        lambda_client.remove_permission.assert_called_once_with(FunctionName="svc-dev-f1", StatementId="svc-dev-f1-b1")

    def test_remove_missing_permission(self, aws_provider, lambda_client):
        lambda_client.remove_permission.side_effect = client_error("ResourceNotFoundException", "RemovePermission", 404)
        with pytest.raises(NotFoundRace):
            aws_provider.remove_permission("svc-dev-f1", "svc-dev-f1-b1")
        lambda_client.remove_permission.assert_called_once_with(FunctionName="svc-dev-f1", StatementId=ANY)

    def test_remove_permission_errors_propagate(self, aws_provider, lambda_client):
        lambda_client.remove_permission.side_effect = client_error("AccessDeniedException", "RemovePermission", 403)
        with pytest.raises(ClientError):
            aws_provider.remove_permission("svc-dev-f1", "svc-dev-f1-b1")
