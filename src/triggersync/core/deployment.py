# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Dict, List

logger = logging.getLogger(__name__)


def gather_stack_outputs(provider: "AWSProvider", stack_name: str) -> List[Dict[str, str]]:
    """Collects the outputs of the deployed stack as [{'OutputKey': ..., 'OutputValue': ...}, ...].

    A missing stack yields no outputs rather than an error, so that functions deployed without version tracking can
    still be resolved by a direct lookup.
    """
    outputs = provider.describe_stack_outputs(stack_name)
    if outputs is None:
        logger.warning("Stack %r could not be found! Function identities will only be resolved by direct lookup.", stack_name)
        return []
    logger.info("Gathered %d outputs from stack %r.", len(outputs), stack_name)
    return outputs
