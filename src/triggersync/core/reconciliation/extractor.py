# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Any, Dict, List

from triggersync.core.errors import ConfigurationError
from triggersync.core.manifest import FunctionDefinition, FunctionRegistry
from triggersync.core.reconciliation.model import BucketPlan, FilterRule, NotificationEntry, TriggerSpec

logger = logging.getLogger(__name__)

EXISTING_S3_EVENT = "existingS3"
DEFAULT_BUCKET_EVENTS = ["s3:ObjectCreated:*"]


def extract_triggers(function: FunctionDefinition) -> List[TriggerSpec]:
    """Storage triggers declared by the function, in declaration order."""
    triggers = []
    for event in function.events:
        if not isinstance(event, dict) or EXISTING_S3_EVENT not in event:
            continue
        declaration = event[EXISTING_S3_EVENT]
        if not isinstance(declaration, dict):
            raise ConfigurationError(f"{EXISTING_S3_EVENT!r} event of function {function.name!r} should be a mapping: {declaration!r}")

        bucket_name = declaration.get("bucket", None)
        if not bucket_name or not isinstance(bucket_name, str):
            raise ConfigurationError(f"{EXISTING_S3_EVENT!r} event of function {function.name!r} is missing the 'bucket' name!")

        event_types = declaration.get("events", None) or declaration.get("bucketEvents", None) or DEFAULT_BUCKET_EVENTS
        if not isinstance(event_types, list) or not all(isinstance(event_type, str) for event_type in event_types):
            raise ConfigurationError(f"Bucket events of function {function.name!r} should be a list of strings: {event_types!r}")

        rules = declaration.get("rules", None) or declaration.get("eventRules", None) or []
        triggers.append(TriggerSpec(bucket_name, _unique(event_types), _read_filter_rules(function.name, rules), function.name))
    return triggers


def extract_bucket_plans(registry: FunctionRegistry) -> List[BucketPlan]:
    """Groups the notification entries of all of the functions by bucket (in first-seen bucket order).

    No remote calls. Raises ConfigurationError on malformed declarations.
    """
    plans: Dict[str, BucketPlan] = dict()
    for function in registry.functions():
        for trigger in extract_triggers(function):
            plan = plans.setdefault(trigger.bucket_name, BucketPlan(trigger.bucket_name))
            plan.add(NotificationEntry.from_trigger(trigger))

    logger.info("Extracted %d trigger(s) on %d bucket(s).", sum(len(plan.entries) for plan in plans.values()), len(plans))
    return list(plans.values())


def _read_filter_rules(function_name: str, rules: Any) -> List[FilterRule]:
    if not isinstance(rules, list):
        raise ConfigurationError(f"Bucket event rules of function {function_name!r} should be a list: {rules!r}")
    filter_rules = []
    for rule in rules:
        if not isinstance(rule, dict):
            raise ConfigurationError(f"Bucket event rule of function {function_name!r} should be a mapping (e.g 'prefix: foo/'): {rule!r}")
        for name, value in rule.items():
            filter_rules.append((str(name), str(value)))
    return filter_rules


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))
