# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import concurrent.futures
import logging
from concurrent.futures import Executor
from enum import Enum, unique
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from triggersync.core.configuration import TriggerSyncConfig
from triggersync.core.deployment import gather_stack_outputs
from triggersync.core.entity import CoreData
from triggersync.core.errors import ConfigurationError, ReconciliationError
from triggersync.core.manifest import FunctionRegistry
from triggersync.core.reconciliation.extractor import extract_bucket_plans
from triggersync.core.reconciliation.identity import IdentityResolver
from triggersync.core.reconciliation.model import BucketPlan, InvocationPermissionStatement, UnitFailure, UnitKind
from triggersync.core.reconciliation.notification import NotificationReconciler
from triggersync.core.reconciliation.permission import FunctionPolicyCache, PermissionReconciler
from triggersync.core.reconciliation.verifier import verify_buckets_exist

logger = logging.getLogger(__name__)


@unique
class Lifecycle(str, Enum):
    APPLY = "apply"
    TEARDOWN = "teardown"


class RunResult(CoreData):
    def __init__(self, lifecycle: Lifecycle) -> None:
        self.lifecycle = lifecycle
        self.succeeded: List[str] = []
        self.unchanged: List[str] = []
        self.failures: List[UnitFailure] = []

    @property
    def ok(self) -> bool:
        return not self.failures

    def failed_units(self, kind: UnitKind) -> List[str]:
        return [failure.name for failure in self.failures if failure.kind == kind]

    def raise_for_failures(self) -> None:
        if self.failures:
            raise ReconciliationError(self.lifecycle.value, self.failures)


class Orchestrator:
    """Runs one apply or teardown over all of the triggers declared in the registry.

    apply: verify buckets -> resolve every function (concurrently) -> reconcile every permission (concurrently)
           -> write every bucket (concurrently). Each stage is joined before the next one starts.
    teardown: remove the tracked entries from every bucket (concurrently). Identities and permissions are untouched.

    Failures of individual functions, permissions or buckets are collected into the RunResult while the remaining
    units carry on. Malformed manifests and missing buckets abort the run before anything is mutated.
    """

    def __init__(
        self,
        provider: "AWSProvider",
        registry: FunctionRegistry,
        stack_name: Optional[str] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self._provider = provider
        self._registry = registry
        self._stack_name = stack_name
        self._max_workers = max_workers if max_workers else TriggerSyncConfig.max_workers

    def verify(self) -> List[BucketPlan]:
        plans = extract_bucket_plans(self._registry)
        verify_buckets_exist(self._provider, plans)
        return plans

    def apply(self) -> RunResult:
        result = RunResult(Lifecycle.APPLY)
        plans = extract_bucket_plans(self._registry)
        if not plans:
            logger.info("No bucket triggers declared, nothing to apply.")
            return result

        verify_buckets_exist(self._provider, plans)

        outputs = gather_stack_outputs(self._provider, self._stack_name) if self._stack_name else []
        resolver = IdentityResolver(self._provider, self._registry, outputs)
        permission_reconciler = PermissionReconciler(self._provider, FunctionPolicyCache())
        notification_reconciler = NotificationReconciler(self._provider)

        with self._create_pool(plans) as pool:
            function_names = []
            for plan in plans:
                function_names.extend([name for name in plan.function_names if name not in function_names])

            logger.critical("Resolving %d function(s)...", len(function_names))
            resolutions = self._fan_out(pool, {name: (resolver.resolve, name) for name in function_names})
            arns: Dict[str, str] = dict()
            for name, (arn, error) in resolutions.items():
                if error:
                    self._record_failure(result, UnitFailure(UnitKind.FUNCTION, name, error))
                else:
                    arns[name] = arn
                    result.succeeded.append(f"{UnitKind.FUNCTION.value} {name}")

            # one permission per (function, bucket) no matter how many triggers the pair has. Statement ids are only
            # unique within the policy of one function.
            statements: Dict[Tuple[str, str], Tuple[InvocationPermissionStatement, str, str]] = dict()
            denied_pairs = set()
            for plan in plans:
                for entry in plan.entries:
                    if entry.function_name not in arns:
                        continue
                    statement = InvocationPermissionStatement.for_bucket(
                        resolver.deployed_name(entry.function_name), plan.bucket_name, self._provider.source_account
                    )
                    key = (statement.function_name, statement.statement_id)
                    existing = statements.get(key, None)
                    if existing is None:
                        statements[key] = (statement, entry.function_name, plan.bucket_name)
                    elif existing[2] != plan.bucket_name and (entry.function_name, plan.bucket_name) not in denied_pairs:
                        denied_pairs.add((entry.function_name, plan.bucket_name))
                        error = ConfigurationError(
                            f"Buckets {existing[2]!r} and {plan.bucket_name!r} map to the same permission statement "
                            f"{statement.statement_id!r} of function {statement.function_name!r}!"
                        )
                        self._record_failure(
                            result, UnitFailure(UnitKind.PERMISSION, self._permission_unit_name(key), error, plan.bucket_name)
                        )

            logger.critical("Reconciling %d permission(s)...", len(statements))
            grants = self._fan_out(pool, {key: (permission_reconciler.reconcile, statement) for key, (statement, _, _) in statements.items()})
            for key, (_, error) in grants.items():
                _, function_name, bucket_name = statements[key]
                if error:
                    denied_pairs.add((function_name, bucket_name))
                    self._record_failure(result, UnitFailure(UnitKind.PERMISSION, self._permission_unit_name(key), error, bucket_name))
                else:
                    result.succeeded.append(f"{UnitKind.PERMISSION.value} {self._permission_unit_name(key)}")

            resolved_plans = []
            for plan in plans:
                entries = [
                    entry.resolve(arns[entry.function_name])
                    for entry in plan.entries
                    if entry.function_name in arns and (entry.function_name, plan.bucket_name) not in denied_pairs
                ]
                if entries:
                    resolved_plans.append(BucketPlan(plan.bucket_name, entries))
                else:
                    logger.error("None of the triggers of bucket %s could be prepared, skipping it.", plan.bucket_name)

            logger.critical("Attaching triggers to %d bucket(s)...", len(resolved_plans))
            writes = self._fan_out(pool, {plan.bucket_name: (notification_reconciler.apply, plan) for plan in resolved_plans})
            for bucket_name, (_, error) in writes.items():
                if error:
                    self._record_failure(result, UnitFailure(UnitKind.BUCKET, bucket_name, error, bucket_name))
                else:
                    result.succeeded.append(f"{UnitKind.BUCKET.value} {bucket_name}")

        logger.critical("Done. %d unit(s) succeeded, %d failed.", len(result.succeeded), len(result.failures))
        return result

    def teardown(self) -> RunResult:
        result = RunResult(Lifecycle.TEARDOWN)
        plans = extract_bucket_plans(self._registry)
        if not plans:
            logger.info("No bucket triggers declared, nothing to remove.")
            return result

        notification_reconciler = NotificationReconciler(self._provider)
        with self._create_pool(plans) as pool:
            removals = self._fan_out(pool, {plan.bucket_name: (notification_reconciler.teardown, plan) for plan in plans})

        for bucket_name, (written, error) in removals.items():
            if error:
                self._record_failure(result, UnitFailure(UnitKind.BUCKET, bucket_name, error, bucket_name))
            elif written is None:
                result.unchanged.append(f"{UnitKind.BUCKET.value} {bucket_name}")
            else:
                result.succeeded.append(f"{UnitKind.BUCKET.value} {bucket_name}")

        logger.critical("Removed all existing bucket events. %d bucket(s) failed.", len(result.failures))
        return result

    def _create_pool(self, plans: List[BucketPlan]) -> concurrent.futures.ThreadPoolExecutor:
        work_count = max(len(plans), sum(len(plan.entries) for plan in plans), 1)
        return concurrent.futures.ThreadPoolExecutor(max_workers=min(self._max_workers, work_count), thread_name_prefix="triggersync")

    @staticmethod
    def _fan_out(
        pool: Executor, tasks: Dict[Hashable, Tuple[Callable[[Any], Any], Any]]
    ) -> Dict[Hashable, Tuple[Optional[Any], Optional[BaseException]]]:
        """Submits every task, waits for all of them and returns (result, error) per task key."""
        futures = {key: pool.submit(func, arg) for key, (func, arg) in tasks.items()}
        if futures:
            concurrent.futures.wait(futures.values())
        outcomes = dict()
        for key, future in futures.items():
            error = future.exception()
            outcomes[key] = (None, error) if error else (future.result(), None)
        return outcomes

    @staticmethod
    def _permission_unit_name(key: Tuple[str, str]) -> str:
        return "/".join(key)

    @staticmethod
    def _record_failure(result: RunResult, failure: UnitFailure) -> None:
        logger.error("Failed %s", failure)
        result.failures.append(failure)
