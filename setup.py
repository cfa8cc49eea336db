# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from setuptools import find_packages, setup
from src.triggersync import __version__ as version

CLI_SCRIPTS = [
    "triggersync = triggersync.cli:console_main",
]

REQUIRED_PACKAGES = [
    "boto3 >= 1.41.1",
    "python-dateutil >= 2.9.0",
    "overrides >= 3.1.0",
    "PyYAML >= 6.0",
]

TEST_PACKAGES = [
    "moto[cloudformation,lambda,s3] >= 5.0",
    "pytest",
    "mock",
]

setup(
    name="triggersync",
    python_requires=">=3.10",
    version=version,
    description="triggersync attaches (and detaches) serverless function triggers to S3 buckets that already exist.",
    keywords="aws cloud serverless lambda s3 bucket notification trigger event deployment",
    author="Amazon.com Inc.",
    license="Apache 2.0",
    packages=find_packages(where="src", exclude=("test", "test_integration")),
    package_dir={"": "src"},
    entry_points={
        "console_scripts": CLI_SCRIPTS,
    },
    install_requires=REQUIRED_PACKAGES,
    extras_require={"test": TEST_PACKAGES},
    include_package_data=True,
)
