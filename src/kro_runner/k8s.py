"""Kubernetes client helpers."""

import logging
import os

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
DEFAULT_NAMESPACE = "default"

# Initialize clients
_v1 = None
_custom_api = None


def load_config():
    """Load in-cluster config, falling back to kubeconfig."""
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
        return True
    except ConfigException:
        config.load_kube_config()
        logger.info("Loaded kubeconfig")
        return False


def init_clients():
    """Initialize Kubernetes clients."""
    global _v1, _custom_api

    load_config()
    _v1 = client.CoreV1Api()
    _custom_api = client.CustomObjectsApi()

    return _v1, _custom_api


def get_clients():
    """Get initialized Kubernetes clients."""
    if _v1 is None or _custom_api is None:
        init_clients()
    return _v1, _custom_api


def current_namespace(namespace_file=SERVICE_ACCOUNT_NAMESPACE_FILE):
    """
    Namespace the runner operates in.

    Resolution order: the pod's service-account namespace file, then the
    namespace of the active kubeconfig context, then "default".
    """
    if os.path.exists(namespace_file):
        with open(namespace_file) as f:
            namespace = f.read().strip()
        if namespace:
            return namespace

    try:
        _, active_context = config.list_kube_config_contexts()
    except (ConfigException, OSError) as e:
        logger.debug(f"No kubeconfig context available: {e}")
        return DEFAULT_NAMESPACE

    namespace = (active_context or {}).get("context", {}).get("namespace")
    return namespace or DEFAULT_NAMESPACE


def is_not_found(error):
    """Whether an API error is a 404."""
    return isinstance(error, ApiException) and error.status == 404


def describe_api_error(error):
    """Short one-line description of an API error for logs."""
    if isinstance(error, ApiException):
        return f"{error.status} {error.reason}"
    return str(error)
