# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from typing import List, Sequence


class TriggerSyncError(Exception):
    pass


class ConfigurationError(TriggerSyncError):
    """Manifest input is malformed. Raised before any remote call is made."""

    pass


class MissingResourceError(TriggerSyncError):
    def __init__(self, missing_buckets: Sequence[str]) -> None:
        self.missing_buckets: List[str] = list(missing_buckets)
        super().__init__(f"Missing the following buckets: {','.join(self.missing_buckets)}")


class RemoteStateError(TriggerSyncError):
    """A remote read returned no usable result."""

    pass


class UnresolvedIdentityError(TriggerSyncError):
    def __init__(self, function_name: str, reason: str = "Unable to retrieve function arn") -> None:
        self.function_name = function_name
        super().__init__(f"{reason} (function={function_name!r})")


class NotFoundRace(TriggerSyncError):
    """A remote entity that was expected to exist is already gone.

    Callers treat this as success since the desired end state has already been reached.
    """

    pass


class ReconciliationError(TriggerSyncError):
    def __init__(self, lifecycle: str, failures: Sequence["UnitFailure"]) -> None:
        self.lifecycle = lifecycle
        self.failures = list(failures)
        details = "; ".join(str(failure) for failure in self.failures)
        super().__init__(f"{lifecycle} failed for {len(self.failures)} unit(s): {details}")
