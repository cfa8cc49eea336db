# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest

from triggersync.core.errors import ConfigurationError
from triggersync.core.reconciliation.model import (
    BucketPlan,
    InvocationPermissionStatement,
    NotificationEntry,
    TriggerSpec,
    UnitFailure,
    UnitKind,
    build_notification_id,
    build_statement_id,
    sanitize_identity,
)


class TestIdentityDerivation:
    def test_sanitize_identity(self):
        assert sanitize_identity("s3:ObjectCreated:*") == "s3ObjectCreated"
        assert sanitize_identity("my.bucket.name") == "mybucketname"
        assert sanitize_identity("a.:*b") == "ab"
        assert sanitize_identity("plain-name_1") == "plain-name_1"
        assert sanitize_identity("") == ""

    def test_build_notification_id(self):
        assert build_notification_id("f1", ["object-created:*"]) == "trigger-f1-when-object-created"
        assert build_notification_id("f1", ["s3:ObjectCreated:*"]) == "trigger-f1-when-s3ObjectCreated"
        assert (
            build_notification_id("f1", ["s3:ObjectCreated:Put", "s3:ObjectRemoved:*"]) == "trigger-f1-when-s3ObjectCreatedPut,s3ObjectRemoved"
        )

    def test_build_notification_id_keeps_function_name_as_is(self):
        # only the event list is sanitized
        assert build_notification_id("svc.f1", ["s3:ObjectCreated:*"]) == "trigger-svc.f1-when-s3ObjectCreated"

    def test_build_notification_id_with_no_events(self):
        assert build_notification_id("f1", []) == "trigger-f1-when-"

    def test_build_notification_id_is_deterministic(self):
        assert build_notification_id("f1", ["s3:ObjectCreated:*"]) == build_notification_id("f1", ("s3:ObjectCreated:*",))

    def test_build_statement_id(self):
        assert build_statement_id("f1", "b1") == "f1-b1"
        assert build_statement_id("svc-dev-f1", "my.bucket:*") == "svc-dev-f1-mybucket"


class TestNotificationEntry:
    def test_entry_from_trigger(self):
        entry = NotificationEntry.from_trigger(TriggerSpec("b1", ["object-created:*"], [], "f1"))
        assert entry.id == "trigger-f1-when-object-created"
        assert entry.invoke_target == "f1"
        assert entry.function_name == "f1"
        assert entry.event_types == ("object-created:*",)
        assert entry.filter is None

    def test_configuration_omits_filter_without_rules(self):
        entry = NotificationEntry("trigger-f1-when-s3ObjectCreated", "arn:f1", ["s3:ObjectCreated:*"])
        assert entry.to_configuration() == {
            "Id": "trigger-f1-when-s3ObjectCreated",
            "LambdaFunctionArn": "arn:f1",
            "Events": ["s3:ObjectCreated:*"],
        }

    def test_configuration_keeps_rule_order(self):
        entry = NotificationEntry("id", "arn:f1", ["s3:ObjectCreated:*"], [("suffix", ".jpg"), ("prefix", "images/")])
        assert entry.to_configuration()["Filter"] == {
            "Key": {"FilterRules": [{"Name": "suffix", "Value": ".jpg"}, {"Name": "prefix", "Value": "images/"}]}
        }

    def test_resolve_replaces_target_only(self):
        entry = NotificationEntry.from_trigger(TriggerSpec("b1", ["s3:ObjectCreated:*"], [("prefix", "a/")], "f1"))
        resolved = entry.resolve("arn:aws:lambda:us-east-1:123456789012:function:f1")
        assert resolved.invoke_target == "arn:aws:lambda:us-east-1:123456789012:function:f1"
        assert resolved.id == entry.id
        assert resolved.function_name == "f1"
        assert resolved.filter_rules == entry.filter_rules
        # unresolved entry is untouched
        assert entry.invoke_target == "f1"

    def test_matches_by_target_or_id(self):
        entry = NotificationEntry("trigger-f1-when-s3ObjectCreated", "arn:f1", ["s3:ObjectCreated:*"])
        assert entry.matches({"Id": "other", "LambdaFunctionArn": "arn:f1"})
        assert entry.matches({"Id": "trigger-f1-when-s3ObjectCreated", "LambdaFunctionArn": "arn:f1:3"})
        assert not entry.matches({"Id": "other", "LambdaFunctionArn": "arn:f2"})
        assert not entry.matches({})


class TestBucketPlan:
    def test_entries_are_appended(self):
        plan = BucketPlan("b1")
        plan.add(NotificationEntry("id1", "f1", ["e"]))
        plan.add(NotificationEntry("id2", "f2", ["e"]))
        assert [entry.id for entry in plan.entries] == ["id1", "id2"]
        assert plan.function_names == ["f1", "f2"]

    def test_duplicate_id_is_rejected(self):
        plan = BucketPlan("b1", [NotificationEntry("id1", "f1", ["e"])])
        with pytest.raises(ConfigurationError) as error:
            plan.add(NotificationEntry("id1", "f1", ["e"], [("prefix", "x")]))
        assert "id1" in str(error.value)

    def test_function_names_are_unique(self):
        plan = BucketPlan("b1", [NotificationEntry("id1", "f1", ["a"]), NotificationEntry("id2", "f1", ["b"])])
        assert plan.function_names == ["f1"]


class TestInvocationPermissionStatement:
    def test_statement_for_bucket(self):
        statement = InvocationPermissionStatement.for_bucket("f1", "b1")
        assert statement.statement_id == "f1-b1"
        assert statement.source_arn == "arn:aws:s3:::b1"
        assert statement.principal == "s3.amazonaws.com"
        assert statement.action == "lambda:InvokeFunction"
        assert statement.function_name == "f1"
        assert statement.source_account is None

    def test_source_arn_keeps_raw_bucket_name(self):
        statement = InvocationPermissionStatement.for_bucket("f1", "my.bucket")
        assert statement.statement_id == "f1-mybucket"
        assert statement.source_arn == "arn:aws:s3:::my.bucket"


class TestUnitFailure:
    def test_failure_names_the_unit(self):
        assert str(UnitFailure(UnitKind.BUCKET, "b1", RuntimeError("boom"), "b1")) == "bucket 'b1': boom"
        assert str(UnitFailure(UnitKind.PERMISSION, "f1-b1", RuntimeError("denied"), "b1")) == "permission 'f1-b1' on bucket 'b1': denied"
        assert str(UnitFailure(UnitKind.FUNCTION, "f1", RuntimeError("gone"))) == "function 'f1': gone"
