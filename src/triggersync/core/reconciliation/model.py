# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import re
from enum import Enum, unique
from typing import Any, Dict, List, Optional, Sequence, Tuple

from triggersync.core.entity import CoreData
from triggersync.core.errors import ConfigurationError
from triggersync.core.platform.definitions.aws.common import LAMBDA_INVOKE_ACTION, S3_SERVICE_PRINCIPAL, get_bucket_arn

# characters S3 notification ids and Lambda statement ids cannot carry
_RESERVED_IDENTITY_CHARS = re.compile(r"[.:*]")

NOTIFICATION_ID_FORMAT = "trigger-{0}-when-{1}"
STATEMENT_ID_FORMAT = "{0}-{1}"

FilterRule = Tuple[str, str]


def sanitize_identity(value: str) -> str:
    return _RESERVED_IDENTITY_CHARS.sub("", value)


def build_notification_id(function_name: str, event_types: Sequence[str]) -> str:
    """Deterministic id of the bucket-side entry of a trigger. Recomputing it on every run is what makes a previous
    run's entry recognizable, there is no other record of what was attached.

    >>> build_notification_id("f1", ["s3:ObjectCreated:*"])
    'trigger-f1-when-s3ObjectCreated'
    """
    return NOTIFICATION_ID_FORMAT.format(function_name, sanitize_identity(",".join(event_types)))


def build_statement_id(deployed_function_name: str, bucket_name: str) -> str:
    return STATEMENT_ID_FORMAT.format(deployed_function_name, sanitize_identity(bucket_name))


class TriggerSpec(CoreData):
    def __init__(self, bucket_name: str, event_types: Sequence[str], filter_rules: Sequence[FilterRule], function_name: str) -> None:
        self.bucket_name = bucket_name
        self.event_types = tuple(event_types)
        self.filter_rules = tuple(filter_rules)
        self.function_name = function_name


class NotificationEntry(CoreData):
    """Bucket-side record of one trigger.

    `invoke_target` is the logical function name until identity resolution replaces it with the invocation ARN.
    """

    def __init__(
        self, id: str, invoke_target: str, event_types: Sequence[str], filter_rules: Sequence[FilterRule] = (), function_name: str = None
    ) -> None:
        self.id = id
        self.invoke_target = invoke_target
        self.event_types = tuple(event_types)
        self.filter_rules = tuple(filter_rules)
        self.function_name = function_name if function_name else invoke_target

    @classmethod
    def from_trigger(cls, trigger: TriggerSpec) -> "NotificationEntry":
        return cls(
            build_notification_id(trigger.function_name, trigger.event_types),
            trigger.function_name,
            trigger.event_types,
            trigger.filter_rules,
            trigger.function_name,
        )

    def resolve(self, invoke_target: str) -> "NotificationEntry":
        return NotificationEntry(self.id, invoke_target, self.event_types, self.filter_rules, self.function_name)

    @property
    def filter(self) -> Optional[Dict[str, Any]]:
        if not self.filter_rules:
            return None
        return {"Key": {"FilterRules": [{"Name": name, "Value": value} for name, value in self.filter_rules]}}

    def to_configuration(self) -> Dict[str, Any]:
        """Wire form of an item of 'LambdaFunctionConfigurations'. 'Filter' is only present if there are rules."""
        configuration = {"Id": self.id, "LambdaFunctionArn": self.invoke_target, "Events": list(self.event_types)}
        entry_filter = self.filter
        if entry_filter:
            configuration["Filter"] = entry_filter
        return configuration

    def matches(self, remote_configuration: Dict[str, Any]) -> bool:
        """Either the same invocation target or the same id means the same logical entry."""
        return remote_configuration.get("LambdaFunctionArn", None) == self.invoke_target or remote_configuration.get("Id", None) == self.id


class BucketPlan(CoreData):
    def __init__(self, bucket_name: str, entries: Optional[List[NotificationEntry]] = None) -> None:
        self.bucket_name = bucket_name
        self.entries: List[NotificationEntry] = []
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: NotificationEntry) -> None:
        if any(existing.id == entry.id for existing in self.entries):
            raise ConfigurationError(
                f"Bucket {self.bucket_name!r} has more than one trigger with id {entry.id!r}! "
                f"Function {entry.function_name!r} declares the same events on this bucket more than once."
            )
        self.entries.append(entry)

    @property
    def function_names(self) -> List[str]:
        names = []
        for entry in self.entries:
            if entry.function_name not in names:
                names.append(entry.function_name)
        return names


class InvocationPermissionStatement(CoreData):
    def __init__(
        self,
        statement_id: str,
        function_name: str,
        source_arn: str,
        principal: str = S3_SERVICE_PRINCIPAL,
        action: str = LAMBDA_INVOKE_ACTION,
        source_account: Optional[str] = None,
    ) -> None:
        self.statement_id = statement_id
        self.function_name = function_name
        self.source_arn = source_arn
        self.principal = principal
        self.action = action
        self.source_account = source_account

    @classmethod
    def for_bucket(cls, deployed_function_name: str, bucket_name: str, source_account: Optional[str] = None) -> "InvocationPermissionStatement":
        return cls(
            build_statement_id(deployed_function_name, bucket_name),
            deployed_function_name,
            get_bucket_arn(bucket_name),
            source_account=source_account,
        )


@unique
class UnitKind(str, Enum):
    FUNCTION = "function"
    PERMISSION = "permission"
    BUCKET = "bucket"


class UnitFailure(CoreData):
    def __init__(self, kind: UnitKind, name: str, error: Exception, bucket_name: Optional[str] = None) -> None:
        self.kind = kind
        self.name = name
        self.error = error
        self.bucket_name = bucket_name

    def __str__(self) -> str:
        target = f"{self.kind.value} {self.name!r}"
        if self.bucket_name and self.kind != UnitKind.BUCKET:
            target = f"{target} on bucket {self.bucket_name!r}"
        return f"{target}: {self.error}"
