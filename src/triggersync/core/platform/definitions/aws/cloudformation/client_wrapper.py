# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Dict, List, Optional

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


def describe_stack_outputs(cfn_client, stack_name: str) -> Optional[List[Dict[str, str]]]:
    """https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/cloudformation/client/describe_stacks.html

    :return: the 'Outputs' of the stack ([{'OutputKey': ..., 'OutputValue': ...}, ...]) or None if there is no stack
             with that name.
    """
    try:
        response = cfn_client.describe_stacks(StackName=stack_name)
    except ClientError as error:
        # CloudFormation reports a missing stack as a generic validation error
        if error.response["Error"]["Code"] == "ValidationError" and "does not exist" in error.response["Error"].get("Message", ""):
            return None
        logger.exception("Couldn't describe stack %s.", stack_name)
        raise

    stacks = response.get("Stacks", [])
    if not stacks:
        return None
    return [
        {"OutputKey": output["OutputKey"], "OutputValue": output["OutputValue"]}
        for output in stacks[0].get("Outputs", [])
        if "OutputValue" in output
    ]
