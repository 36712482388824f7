"""ResourceGraph instance creation."""

import logging

import urllib3
from kubernetes.client.rest import ApiException

from . import crd
from .context import RunContext
from .discovery import find_template
from .errors import (
    CreateOutcomeUnknownError,
    DiscoveryError,
    EmptyJitConfigError,
    EmptyRunnerNameError,
    ResourceError,
)
from .k8s import describe_api_error
from .manifests import create_instance_manifest, create_owner_reference
from .session import RunnerSession

logger = logging.getLogger(__name__)


def validate_inputs(runner_name, jit_config):
    if not runner_name:
        raise EmptyRunnerNameError()
    if not jit_config:
        raise EmptyJitConfigError()


def read_orchestrator_pod(v1, runner_name, namespace, context):
    """Read the pod running this process; its name equals the runner name."""
    try:
        return v1.read_namespaced_pod(
            name=runner_name,
            namespace=namespace,
            _request_timeout=context.request_timeout(),
        )
    except ApiException as e:
        raise ResourceError(
            f"failed to get orchestrator pod for owner reference: {describe_api_error(e)}"
        ) from e
    except urllib3.exceptions.HTTPError as e:
        raise ResourceError(f"failed to get orchestrator pod for owner reference: {e}") from e


def create_instance(v1, custom_api, namespace, scale_set_name, runner_name, jit_config, context=None, names=None):
    """
    Create the ResourceGraph instance for a runner and return its session.

    The JIT config is only checked for presence. ARC stores it in a secret
    named after the runner, which the RGD references by that name.
    """
    validate_inputs(runner_name, jit_config)
    context = context or RunContext.background()
    context.raise_if_done()

    pod = read_orchestrator_pod(v1, runner_name, namespace, context)

    try:
        template = find_template(custom_api, scale_set_name, context, names)
    except DiscoveryError as e:
        logger.error(f"Failed to discover RGD: {e}")
        raise

    logger.info(f"Using ARC-created secret: {runner_name}")

    session = RunnerSession.for_runner(
        runner_name,
        namespace=namespace,
        scale_set_name=scale_set_name,
    )
    body = create_instance_manifest(template, session, [create_owner_reference(pod)])

    logger.info(f"Creating ResourceGraph instance: kind={template.kind}, name={runner_name}")
    context.raise_if_done()
    try:
        custom_api.create_namespaced_custom_object(
            group=crd.GROUP,
            version=crd.VERSION,
            namespace=namespace,
            plural=template.plural,
            body=body,
            _request_timeout=context.request_timeout(),
        )
    except ApiException as e:
        raise ResourceError(
            f"failed to create ResourceGraph instance: {describe_api_error(e)}"
        ) from e
    except urllib3.exceptions.HTTPError as e:
        raise CreateOutcomeUnknownError(f"failed to create ResourceGraph instance: {e}") from e

    logger.info(f"ResourceGraph instance created successfully: {runner_name}")
    return session
