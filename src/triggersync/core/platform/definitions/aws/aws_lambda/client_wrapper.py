# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import json
import logging
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


def get_lambda_arn(lambda_client, function_name: str) -> Optional[str]:
    """
    Get AWS Lambda function's ARN using function name, if such lambda exist in that region.
    :param lambda_client: The Boto3 AWS Lambda client object.
    :param function_name: The name of the function to find.
    :return: ARN of the lambda as str, None if such lambda cannot be found.
    """
    lambda_detail = _get_lambda_function_details(lambda_client, function_name)
    return lambda_detail["Configuration"]["FunctionArn"] if lambda_detail else None


def get_policy(lambda_client, function_name: str) -> Dict[str, Any]:
    """https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/lambda/client/get_policy.html

    Returns the parsed resource-based policy document of the function. Raises the ClientError as is (including
    'ResourceNotFoundException' for a function without any policy) so that the caller can classify it.
    """
    try:
        response = lambda_client.get_policy(FunctionName=function_name)
    except ClientError:
        raise
    return json.loads(response["Policy"])


def add_permission(lambda_client, function_name, statement_id, action, principal, source_arn=None, source_account=None):
    """https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/lambda.html#Lambda.Client.add_permission"""

    kwargs = {
        "FunctionName": function_name,
        "StatementId": statement_id,  # should be unique
        "Action": action,  # 'lambda:InvokeFunction'
        "Principal": principal,  # 's3.amazonaws.com'
    }
    if source_arn:
        kwargs.update({"SourceArn": source_arn})

    if source_account:
        kwargs.update({"SourceAccount": source_account})

    try:
        response = lambda_client.add_permission(**kwargs)
        statement = response["Statement"]
        logger.info("added permission to function: '%s'. new statement: '%s'.", function_name, statement)
    except ClientError:
        logger.exception("Couldn't add permission to function %s.", function_name)
        raise
    else:
        return statement


def remove_permission(lambda_client, function_name, statement_id):
    """https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/lambda.html#Lambda.Client.remove_permission"""
    try:
        lambda_client.remove_permission(
            FunctionName=function_name,
            StatementId=statement_id,  # should be unique
        )
        logger.info("removed permission %s from function: '%s'.", statement_id, function_name)
    except ClientError:
        raise


def _get_lambda_function_details(lambda_client, function_name: str) -> Optional[Dict]:
    """
    Get details about an AWS Lambda function.
    :param lambda_client: The Boto3 AWS Lambda client object.
    :param function_name: The name of the function to query.
    :return: dictionary contains details about the lambda or None if no such lambda is found
    """
    try:
        return lambda_client.get_function(FunctionName=function_name)
    except ClientError as ex:
        if ex.response["Error"]["Code"] == "ResourceNotFoundException":
            return None
        logger.error("Couldn't check lambda '%s'! Error: %s", function_name, str(ex))
        raise
