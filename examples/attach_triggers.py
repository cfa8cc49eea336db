# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import os

from triggersync.api import *

init_basic_logging()

# run right after the service has been deployed, with credentials that can read the stack outputs and update both the
# function policies and the bucket notifications
manifest_path = os.path.join(os.path.dirname(__file__), "serverless.yml")

# fail early (nothing is changed) if any of the buckets is missing
plans = verify_buckets(manifest_path, stage="dev")
for plan in plans:
    print(f"{plan.bucket_name}: {[entry.id for entry in plan.entries]}")

result = apply_triggers(manifest_path, stage="dev", max_workers=4)
result.raise_for_failures()

# before removing the service
# remove_triggers(manifest_path, stage="dev").raise_for_failures()
