# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import List, Sequence

from triggersync.core.errors import MissingResourceError, RemoteStateError
from triggersync.core.reconciliation.model import BucketPlan

logger = logging.getLogger(__name__)


def verify_buckets_exist(provider: "AWSProvider", plans: Sequence[BucketPlan]) -> None:
    """Lists the buckets once and fails with every missing bucket named, before anything is mutated."""
    if not plans:
        return

    logger.info("Checking existing buckets actually exist")
    existing_buckets = provider.list_bucket_names()
    if existing_buckets is None:
        raise RemoteStateError("No buckets returned")

    existing = set(existing_buckets)
    missing_buckets: List[str] = []
    for plan in plans:
        if plan.bucket_name not in existing and plan.bucket_name not in missing_buckets:
            missing_buckets.append(plan.bucket_name)

    if missing_buckets:
        raise MissingResourceError(missing_buckets)

    logger.info("All existing buckets actually exist")
