# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest

from triggersync.core.errors import MissingResourceError, RemoteStateError
from triggersync.core.reconciliation.model import BucketPlan
from triggersync.core.reconciliation.verifier import verify_buckets_exist
from triggersync.mixins.aws.test import InMemoryProvider


class TestVerifyBucketsExist:
    def test_verify_without_plans_makes_no_call(self):
        provider = InMemoryProvider()
        verify_buckets_exist(provider, [])
        assert provider.list_bucket_names.call_count == 0

    def test_verify_all_buckets_exist(self):
        provider = InMemoryProvider(buckets={"b1": {}, "b2": {}, "other": {}})
        verify_buckets_exist(provider, [BucketPlan("b1"), BucketPlan("b2")])
        assert provider.list_bucket_names.call_count == 1

    def test_verify_names_every_missing_bucket(self):
        provider = InMemoryProvider(buckets={"b1": {}})
        with pytest.raises(MissingResourceError) as error:
            verify_buckets_exist(provider, [BucketPlan("b3"), BucketPlan("b1"), BucketPlan("b2")])
        assert error.value.missing_buckets == ["b3", "b2"]
        assert str(error.value) == "Missing the following buckets: b3,b2"

    def test_verify_fails_without_bucket_listing(self):
        provider = InMemoryProvider()
        provider.list_bucket_names.side_effect = lambda: None
        with pytest.raises(RemoteStateError):
            verify_buckets_exist(provider, [BucketPlan("b1")])

    def test_verify_propagates_listing_errors(self):
        provider = InMemoryProvider(buckets={"b1": {}})
        provider.list_bucket_names.side_effect = RuntimeError("AccessDenied")
        with pytest.raises(RuntimeError):
            verify_buckets_exist(provider, [BucketPlan("b1")])
