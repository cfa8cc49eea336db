# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest

from triggersync.core.configuration import TriggerSyncConfig


@pytest.fixture(autouse=True)
def reset_config(monkeypatch):
    for env_var in [TriggerSyncConfig.STAGE, TriggerSyncConfig.REGION, TriggerSyncConfig.MAX_WORKERS, TriggerSyncConfig.SOURCE_ACCOUNT]:
        monkeypatch.delenv(env_var, raising=False)
    TriggerSyncConfig.reset()
    yield
    TriggerSyncConfig.reset()
