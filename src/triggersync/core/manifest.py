# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import copy
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from overrides import overrides

from triggersync.core.configuration import DEFAULT_STAGE
from triggersync.core.entity import CoreData
from triggersync.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_FILE = "serverless.yml"
DEPLOYED_FUNCTION_NAME_FORMAT = "{0}-{1}-{2}"


class FunctionDefinition(CoreData):
    """A function as declared in the manifest.

    `name` is the logical name (the key under 'functions'), `deployed_name` is the name the function is deployed with.
    `events` are the raw event declarations, in declaration order.
    """

    def __init__(self, name: str, deployed_name: str, events: List[Dict[str, Any]]) -> None:
        self.name = name
        self.deployed_name = deployed_name
        self.events = events


class FunctionRegistry(ABC):
    """Source of desired triggers and of the mapping from logical function name to deployed identifier."""

    @abstractmethod
    def functions(self) -> List[FunctionDefinition]: ...

    @abstractmethod
    def get_function(self, name: str) -> Optional[FunctionDefinition]: ...

    @property
    @abstractmethod
    def version_functions_disabled(self) -> bool:
        """True if the manifest explicitly turned off automatic function versioning."""
        ...


class ServiceManifest(FunctionRegistry):
    """Registry over a 'serverless.yml' style document:

        service: my-service
        provider:
          stage: dev
          region: us-east-1
          versionFunctions: false
        functions:
          resize:
            handler: handler.resize
            events:
              - existingS3:
                  bucket: my-uploads
                  events:
                    - s3:ObjectCreated:*
                  rules:
                    - prefix: images/
                    - suffix: .jpg
    """

    def __init__(self, document: Dict[str, Any], stage: Optional[str] = None) -> None:
        if not isinstance(document, dict):
            raise ConfigurationError(f"Manifest should be a mapping, got {type(document).__name__!r}.")
        self._document = document
        self._service = self._read_service_name(document)
        provider = document.get("provider", None) or {}
        if not isinstance(provider, dict):
            raise ConfigurationError(f"'provider' section of the manifest should be a mapping: {provider!r}")
        self._provider = provider
        self._stage = stage or self.provider_stage or DEFAULT_STAGE
        self._functions = self._read_functions(document)

    @classmethod
    def load(cls, path: Union[str, Path] = DEFAULT_MANIFEST_FILE, stage: Optional[str] = None) -> "ServiceManifest":
        manifest_path = Path(path)
        if not manifest_path.exists():
            raise ConfigurationError(f"Manifest file {str(manifest_path)!r} does not exist!")
        with open(manifest_path, "r") as manifest_file:
            try:
                document = yaml.safe_load(manifest_file)
            except yaml.YAMLError as error:
                raise ConfigurationError(f"Manifest file {str(manifest_path)!r} is not valid YAML: {error}") from error
        logger.info("Loaded manifest %s", manifest_path)
        return cls(document, stage)

    def with_stage(self, stage: str) -> "ServiceManifest":
        return ServiceManifest(copy.deepcopy(self._document), stage)

    @property
    def service(self) -> str:
        return self._service

    @property
    def stage(self) -> str:
        return self._stage

    @property
    def provider_stage(self) -> Optional[str]:
        return self._provider.get("stage", None)

    @property
    def provider_region(self) -> Optional[str]:
        return self._provider.get("region", None)

    @property
    def stack_name(self) -> str:
        return self._provider.get("stackName", None) or f"{self._service}-{self._stage}"

    @overrides
    def functions(self) -> List[FunctionDefinition]:
        return list(self._functions.values())

    @overrides
    def get_function(self, name: str) -> Optional[FunctionDefinition]:
        return self._functions.get(name, None)

    @property
    def version_functions_disabled(self) -> bool:
        return self._provider.get("versionFunctions", True) is False

    @staticmethod
    def _read_service_name(document: Dict[str, Any]) -> str:
        service = document.get("service", None)
        # older manifests use the mapping form 'service: {name: ...}'
        if isinstance(service, dict):
            service = service.get("name", None)
        if not service or not isinstance(service, str):
            raise ConfigurationError("Manifest should declare a 'service' name!")
        return service

    def _read_functions(self, document: Dict[str, Any]) -> Dict[str, FunctionDefinition]:
        functions = document.get("functions", None) or {}
        if not isinstance(functions, dict):
            raise ConfigurationError(f"'functions' section of the manifest should be a mapping: {functions!r}")

        definitions: Dict[str, FunctionDefinition] = dict()
        for key, function in functions.items():
            function = function or {}
            if not isinstance(function, dict):
                raise ConfigurationError(f"Definition of function {key!r} should be a mapping: {function!r}")
            events = function.get("events", None) or []
            if not isinstance(events, list):
                raise ConfigurationError(f"'events' of function {key!r} should be a list: {events!r}")
            deployed_name = function.get("name", None) or DEPLOYED_FUNCTION_NAME_FORMAT.format(self._service, self._stage, key)
            definitions[key] = FunctionDefinition(key, deployed_name, events)
        return definitions
