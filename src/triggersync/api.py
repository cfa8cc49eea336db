# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ._logging_config import init_basic_logging
from .core.configuration import TriggerSyncConfig, resolve_stage_and_region, set_config
from .core.errors import (
    ConfigurationError,
    MissingResourceError,
    NotFoundRace,
    ReconciliationError,
    RemoteStateError,
    TriggerSyncError,
    UnresolvedIdentityError,
)
from .core.manifest import DEFAULT_MANIFEST_FILE, FunctionDefinition, FunctionRegistry, ServiceManifest
from .core.platform.definitions.aws.common import get_assumed_role_session, get_session
from .core.platform.provider import AWSProvider
from .core.reconciliation.extractor import extract_bucket_plans
from .core.reconciliation.model import (
    BucketPlan,
    InvocationPermissionStatement,
    NotificationEntry,
    TriggerSpec,
    UnitFailure,
    UnitKind,
    build_notification_id,
    build_statement_id,
)
from .core.reconciliation.orchestrator import Lifecycle, Orchestrator, RunResult

logger = logging.getLogger(__name__)


def load_context(
    manifest_path: Union[str, Path] = DEFAULT_MANIFEST_FILE,
    stage: Optional[str] = None,
    region: Optional[str] = None,
    profile: Optional[str] = None,
    role_arn: Optional[str] = None,
) -> Tuple[ServiceManifest, AWSProvider]:
    """Loads the manifest and binds a provider to the resolved stage/region."""
    manifest = ServiceManifest.load(manifest_path)
    stage, region = resolve_stage_and_region(stage, region, manifest.provider_stage, manifest.provider_region)
    manifest = manifest.with_stage(stage)

    session = get_session(profile, region)
    if role_arn:
        session = get_assumed_role_session(role_arn, session, region)
    return manifest, AWSProvider(session, stage, region, TriggerSyncConfig.source_account)


def create_orchestrator(manifest: ServiceManifest, provider: AWSProvider, max_workers: Optional[int] = None) -> Orchestrator:
    return Orchestrator(provider, manifest, manifest.stack_name, max_workers)


def apply_triggers(manifest_path: Union[str, Path] = DEFAULT_MANIFEST_FILE, **kwargs) -> RunResult:
    """Attaches the 'existingS3' triggers of the manifest to their buckets. Meant to run right after a deployment."""
    max_workers = kwargs.pop("max_workers", None)
    manifest, provider = load_context(manifest_path, **kwargs)
    return create_orchestrator(manifest, provider, max_workers).apply()


def remove_triggers(manifest_path: Union[str, Path] = DEFAULT_MANIFEST_FILE, **kwargs) -> RunResult:
    """Detaches the 'existingS3' triggers of the manifest from their buckets. Meant to run right before a removal."""
    max_workers = kwargs.pop("max_workers", None)
    manifest, provider = load_context(manifest_path, **kwargs)
    return create_orchestrator(manifest, provider, max_workers).teardown()


def verify_buckets(manifest_path: Union[str, Path] = DEFAULT_MANIFEST_FILE, **kwargs) -> List[BucketPlan]:
    """Raises MissingResourceError if any of the buckets the manifest attaches triggers to does not exist."""
    kwargs.pop("max_workers", None)
    manifest, provider = load_context(manifest_path, **kwargs)
    return create_orchestrator(manifest, provider).verify()
