# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
import re
from typing import Dict, List, Optional, Sequence

from triggersync.core.errors import UnresolvedIdentityError
from triggersync.core.manifest import FunctionRegistry

logger = logging.getLogger(__name__)

# version qualifier of a qualified function ARN (e.g 'arn:aws:lambda:us-east-1:123456789012:function:foo:3')
_VERSION_QUALIFIER = re.compile(r":\d+$")


def strip_version_qualifier(arn: str) -> str:
    return _VERSION_QUALIFIER.sub("", arn)


def find_arn_in_outputs(outputs: Sequence[Dict[str, str]], deployed_name: str) -> Optional[str]:
    """Unqualified ARN from the first output value that embeds `deployed_name`.

    A value whose unqualified ARN ends with ':<deployed_name>' wins over other values that merely contain the name
    (e.g 'svc-dev-f1' is also a substring of 'svc-dev-f10').
    """
    candidates: List[str] = [
        strip_version_qualifier(output["OutputValue"]) for output in outputs if deployed_name in output.get("OutputValue", "")
    ]
    if not candidates:
        return None
    for candidate in candidates:
        if candidate.endswith(f":{deployed_name}"):
            return candidate
    return candidates[0]


class IdentityResolver:
    """Maps logical function names to invocation ARNs, from the gathered stack outputs first and by a direct lookup if
    the manifest disabled function versioning."""

    def __init__(self, provider: "AWSProvider", registry: FunctionRegistry, outputs: Sequence[Dict[str, str]]) -> None:
        self._provider = provider
        self._registry = registry
        self._outputs = list(outputs)

    def deployed_name(self, function_name: str) -> str:
        function = self._registry.get_function(function_name)
        if function is None:
            raise UnresolvedIdentityError(
                function_name, "It looks like the function has not yet been deployed. Deploy the service before attaching triggers"
            )
        return function.deployed_name

    def resolve(self, function_name: str) -> str:
        deployed_name = self.deployed_name(function_name)

        arn = find_arn_in_outputs(self._outputs, deployed_name)
        if arn:
            logger.info("Resolved %s to %s from stack outputs.", function_name, arn)
            return arn

        # unable to find the function in the outputs, check if versioning was explicitly turned off
        if self._registry.version_functions_disabled:
            arn = self._provider.get_function_arn(deployed_name)
            if arn:
                logger.info("Resolved %s to %s by lookup.", function_name, arn)
                return arn
            raise UnresolvedIdentityError(function_name, f"Function {deployed_name!r} could not be found")

        raise UnresolvedIdentityError(function_name)
