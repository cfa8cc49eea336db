# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
import os
from typing import Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_STAGE = "dev"
DEFAULT_REGION = "us-east-1"
DEFAULT_MAX_WORKERS = 8


class _TriggerSyncConfiguration(type):
    def __init__(cls, *args, **kwargs):
        cls._conf = dict()

    @property
    def conf(cls) -> Dict[str, Union[str, int]]:
        return cls._conf

    @property
    def stage(cls) -> Optional[str]:
        """First checks whether the user has set the value programmatically, then falls back to environment variable"""
        return cls._conf.get(cls.STAGE, os.getenv(cls.STAGE))

    @stage.setter
    def stage(cls, stage: str) -> None:
        cls._conf[cls.STAGE] = stage

    @property
    def region(cls) -> Optional[str]:
        """First checks whether the user has set the value programmatically, then falls back to environment variable"""
        return cls._conf.get(cls.REGION, os.getenv(cls.REGION))

    @region.setter
    def region(cls, region: str) -> None:
        cls._conf[cls.REGION] = region

    @property
    def source_account(cls) -> Optional[str]:
        """Account expected to own the buckets. Passed along with permission and notification calls when set."""
        return cls._conf.get(cls.SOURCE_ACCOUNT, os.getenv(cls.SOURCE_ACCOUNT))

    @source_account.setter
    def source_account(cls, source_account: str) -> None:
        cls._conf[cls.SOURCE_ACCOUNT] = source_account

    @property
    def max_workers(cls) -> int:
        value = cls._conf.get(cls.MAX_WORKERS, os.getenv(cls.MAX_WORKERS))
        if value is None:
            return DEFAULT_MAX_WORKERS
        try:
            max_workers = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid value for {cls.MAX_WORKERS!r}! It should be a positive integer: {value!r}.")
        if max_workers < 1:
            raise ValueError(f"Invalid value for {cls.MAX_WORKERS!r}! It should be a positive integer: {value!r}.")
        return max_workers

    @max_workers.setter
    def max_workers(cls, max_workers: int) -> None:
        if not isinstance(max_workers, int) or max_workers < 1:
            raise ValueError(f"Invalid parameter for {cls.MAX_WORKERS!r}! It should be a positive integer: {max_workers!r}.")
        cls._conf[cls.MAX_WORKERS] = max_workers

    def reset(cls) -> None:
        cls._conf.clear()


class TriggerSyncConfig(metaclass=_TriggerSyncConfiguration):
    STAGE = "TRIGGERSYNC_STAGE"
    REGION = "TRIGGERSYNC_REGION"
    MAX_WORKERS = "TRIGGERSYNC_MAX_WORKERS"
    SOURCE_ACCOUNT = "TRIGGERSYNC_SOURCE_ACCOUNT"


def set_config(
    stage: Optional[str] = None, region: Optional[str] = None, max_workers: Optional[int] = None, source_account: Optional[str] = None
) -> None:
    if stage is not None:
        TriggerSyncConfig.stage = stage
    if region is not None:
        TriggerSyncConfig.region = region
    if max_workers is not None:
        TriggerSyncConfig.max_workers = max_workers
    if source_account is not None:
        TriggerSyncConfig.source_account = source_account


def resolve_stage_and_region(
    stage_option: Optional[str] = None,
    region_option: Optional[str] = None,
    manifest_stage: Optional[str] = None,
    manifest_region: Optional[str] = None,
) -> Tuple[str, str]:
    """Precedence: explicit option, then configuration (programmatic or environment), then the manifest's provider
    section, then the defaults."""
    stage = stage_option or TriggerSyncConfig.stage or manifest_stage or DEFAULT_STAGE
    region = region_option or TriggerSyncConfig.region or manifest_region or DEFAULT_REGION
    logger.info("Resolved execution context stage=%s region=%s", stage, region)
    return stage, region
