# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional

from triggersync.core.errors import NotFoundRace
from triggersync.core.reconciliation.model import InvocationPermissionStatement

logger = logging.getLogger(__name__)

PolicyDocument = Optional[Dict[str, Any]]


class FunctionPolicyCache:
    """Policy documents of functions, fetched at most once per function during one run.

    The in-flight fetch is memoized (not just its result): concurrent readers of the same function wait on the first
    reader's fetch instead of issuing their own. A failed fetch is evicted so that a later reader can try again.
    Build a new cache for every run, nothing here is valid across runs.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._policies: Dict[str, "Future[PolicyDocument]"] = dict()

    def get(self, function_name: str, loader: Callable[[str], PolicyDocument]) -> PolicyDocument:
        with self._lock:
            future = self._policies.get(function_name, None)
            is_owner = future is None
            if is_owner:
                future = Future()
                self._policies[function_name] = future

        if is_owner:
            try:
                future.set_result(loader(function_name))
            except Exception as error:
                with self._lock:
                    del self._policies[function_name]
                future.set_exception(error)
        return future.result()

    def __contains__(self, function_name: str) -> bool:
        with self._lock:
            return function_name in self._policies

    def __len__(self) -> int:
        with self._lock:
            return len(self._policies)


def find_statement(policy: PolicyDocument, statement_id: str) -> Optional[Dict[str, Any]]:
    if not policy:
        return None
    statements = policy.get("Statement", [])
    if isinstance(statements, dict):
        statements = [statements]
    for statement in statements:
        if statement.get("Sid", None) == statement_id:
            return statement
    return None


class PermissionReconciler:
    """Keeps exactly one statement per (function, bucket) allowing S3 to invoke the function.

    Lambda has no upsert for policy statements, so an existing statement with the same id is removed before the new one
    is added.
    """

    def __init__(self, provider: "AWSProvider", cache: FunctionPolicyCache) -> None:
        self._provider = provider
        self._cache = cache

    def reconcile(self, statement: InvocationPermissionStatement) -> None:
        policy = self._cache.get(statement.function_name, self._provider.get_policy)

        if find_statement(policy, statement.statement_id):
            try:
                self._provider.remove_permission(statement.function_name, statement.statement_id)
            except NotFoundRace:
                logger.info("Statement %s is already gone from function %s.", statement.statement_id, statement.function_name)

        self._provider.add_permission(
            statement.function_name,
            statement.statement_id,
            statement.action,
            statement.principal,
            statement.source_arn,
            statement.source_account,
        )
        logger.info("Granted %s permission on %s to %s.", statement.principal, statement.function_name, statement.source_arn)
