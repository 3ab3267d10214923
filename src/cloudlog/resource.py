"""
Monitored resource helpers and environment detection.

Detection reads only the environment variables each serverless/container
runtime sets; labels the environment does not expose are left empty.
"""

from __future__ import annotations

import copy
import os
from collections.abc import Mapping
from typing import Dict, Optional, TypedDict

from .common import snakecase_keys
from .logging import get_logger

logger = get_logger("cloudlog.resource")


class MonitoredResource(TypedDict, total=False):
    type: str
    labels: Dict[str, str]


def normalize_resource(resource: Mapping) -> MonitoredResource:
    """Copy an explicit resource with its label keys converted to snake_case."""
    normalized: MonitoredResource = copy.deepcopy(dict(resource))  # type: ignore[assignment]
    if normalized.get("labels"):
        snakecase_keys(normalized["labels"])
    return normalized


def _cloud_function(env: Mapping[str, str], project_id: str) -> MonitoredResource:
    return {
        "type": "cloud_function",
        "labels": {
            "project_id": project_id,
            "function_name": env.get("FUNCTION_TARGET") or env.get("FUNCTION_NAME", ""),
            "region": env.get("FUNCTION_REGION", ""),
        },
    }


def _cloud_run(env: Mapping[str, str], project_id: str) -> MonitoredResource:
    return {
        "type": "cloud_run_revision",
        "labels": {
            "project_id": project_id,
            "service_name": env.get("K_SERVICE", ""),
            "revision_name": env.get("K_REVISION", ""),
            "configuration_name": env.get("K_CONFIGURATION", ""),
            "location": env.get("CLOUD_RUN_REGION", ""),
        },
    }


def _app_engine(env: Mapping[str, str], project_id: str) -> MonitoredResource:
    return {
        "type": "gae_app",
        "labels": {
            "project_id": project_id,
            "module_id": env.get("GAE_SERVICE", ""),
            "version_id": env.get("GAE_VERSION", ""),
            "zone": env.get("GAE_ZONE", ""),
        },
    }


def _kubernetes(env: Mapping[str, str], project_id: str) -> MonitoredResource:
    return {
        "type": "k8s_container",
        "labels": {
            "project_id": project_id,
            "cluster_name": env.get("CLUSTER_NAME", ""),
            "location": env.get("CLUSTER_LOCATION", ""),
            "namespace_name": env.get("NAMESPACE_NAME") or env.get("POD_NAMESPACE", ""),
            "pod_name": env.get("POD_NAME") or env.get("HOSTNAME", ""),
            "container_name": env.get("CONTAINER_NAME", ""),
        },
    }


def detect_resource_from_env(project_id: str, env: Optional[Mapping[str, str]] = None) -> MonitoredResource:
    """Pick the monitored resource type for the current runtime."""
    env = os.environ if env is None else env

    # Gen2 functions also set K_SERVICE, so check functions first
    if env.get("FUNCTION_TARGET") or env.get("FUNCTION_NAME"):
        return _cloud_function(env, project_id)
    if env.get("K_CONFIGURATION") and env.get("K_SERVICE"):
        return _cloud_run(env, project_id)
    if env.get("GAE_SERVICE"):
        return _app_engine(env, project_id)
    if env.get("KUBERNETES_SERVICE_HOST"):
        return _kubernetes(env, project_id)
    return {"type": "global", "labels": {"project_id": project_id}}


class EnvironmentResourceDetector:
    """`ResourceDetector` backed by `detect_resource_from_env`."""

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        self._env = env

    async def detect(self, project_id: str) -> MonitoredResource:
        resource = detect_resource_from_env(project_id, self._env)
        logger.debug("resource_detected", resource_type=resource["type"], project_id=project_id)
        return resource
