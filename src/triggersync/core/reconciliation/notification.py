# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from triggersync.core.errors import RemoteStateError
from triggersync.core.reconciliation.model import BucketPlan, NotificationEntry

logger = logging.getLogger(__name__)

LAMBDA_CONFIGURATIONS = "LambdaFunctionConfigurations"


def _is_tracked(remote_configuration: Dict[str, Any], entries: Sequence[NotificationEntry]) -> bool:
    return any(entry.matches(remote_configuration) for entry in entries)


def merge_lambda_configurations(remote: Sequence[Dict[str, Any]], desired: Sequence[NotificationEntry]) -> List[Dict[str, Any]]:
    """Remote configurations that none of the desired entries claim (same target or same id), followed by the desired
    entries. Only the remote side is matched, so desired entries sharing a target never evict each other."""
    kept = [configuration for configuration in remote if not _is_tracked(configuration, desired)]
    return kept + [entry.to_configuration() for entry in desired]


def remove_lambda_configurations(
    remote: Sequence[Dict[str, Any]], tracked: Sequence[NotificationEntry]
) -> Tuple[List[Dict[str, Any]], int]:
    """Remote configurations without the tracked ones, along with the number of configurations removed."""
    kept = [configuration for configuration in remote if not _is_tracked(configuration, tracked)]
    return kept, len(remote) - len(kept)


class NotificationReconciler:
    """Read-modify-write of a bucket's notification configuration.

    S3 only supports replacing the whole document and offers no conditional write, so a change made to the same bucket
    by someone else between our read and our write is lost (and ours can be lost the same way). Callers must not run
    two reconciliations of the same bucket concurrently; nothing here can prevent it across processes.
    """

    def __init__(self, provider: "AWSProvider") -> None:
        self._provider = provider

    def read(self, bucket_name: str) -> Dict[str, Any]:
        configuration = self._provider.get_notification_configuration(bucket_name)
        if configuration is None:
            raise RemoteStateError(f"No notification configuration returned for bucket {bucket_name!r}")
        return configuration

    def write(self, bucket_name: str, configuration: Dict[str, Any]) -> None:
        self._provider.put_notification_configuration(bucket_name, configuration)

    def apply(self, plan: BucketPlan) -> Dict[str, Any]:
        """Attaches (or replaces) the resolved entries of the plan. Returns the configuration written."""
        configuration = self.read(plan.bucket_name)
        for entry in plan.entries:
            logger.info("Attaching %s to %s %s...", entry.invoke_target, plan.bucket_name, list(entry.event_types))
        configuration[LAMBDA_CONFIGURATIONS] = merge_lambda_configurations(configuration.get(LAMBDA_CONFIGURATIONS, []), plan.entries)
        self.write(plan.bucket_name, configuration)
        return configuration

    def teardown(self, plan: BucketPlan) -> Optional[Dict[str, Any]]:
        """Removes the entries of the plan. Returns the configuration written, or None if there was nothing to remove
        (in which case the bucket is not written at all)."""
        configuration = self.read(plan.bucket_name)
        for entry in plan.entries:
            logger.info("Removing %s from %s %s...", entry.invoke_target, plan.bucket_name, list(entry.event_types))
        remaining, removed_count = remove_lambda_configurations(configuration.get(LAMBDA_CONFIGURATIONS, []), plan.entries)
        if not removed_count:
            logger.info("Nothing to remove from bucket %s.", plan.bucket_name)
            return None
        configuration[LAMBDA_CONFIGURATIONS] = remaining
        self.write(plan.bucket_name, configuration)
        return configuration
