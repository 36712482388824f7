"""Watch a ResourceGraph instance until the runner finishes."""

import logging
import math

import urllib3
from kubernetes import watch
from kubernetes.client.rest import ApiException

from . import crd
from .context import RunContext
from .errors import WatchError
from .k8s import describe_api_error
from .status import IndeterminatePolicy, Outcome, evaluate, resolve_outcome, snapshot_from_object

logger = logging.getLogger(__name__)

# Server-side lifetime of one watch request; the loop re-opens after it so a
# cancelled context is noticed even when no events arrive.
DEFAULT_WATCH_WINDOW = 10

# Extra client-side read time on top of the server-side window
READ_TIMEOUT_SLACK = 5


def _window_seconds(context, window):
    remaining = context.remaining()
    if remaining is not None:
        window = min(window, remaining)
    return max(int(math.ceil(window)), 1)


def _resource_version(obj):
    if not isinstance(obj, dict):
        return None
    return (obj.get("metadata") or {}).get("resourceVersion")


def handle_event(event, runner_name):
    """Return the terminal Outcome an event implies, or None to keep waiting."""
    event_type = event.get("type")
    if event_type == "ERROR":
        raise WatchError(f"watch error: {event.get('raw_object') or event.get('object')}")

    obj = event.get("object")
    if not isinstance(obj, dict):
        return None

    if event_type == "DELETED":
        logger.info(f"ResourceGraph {runner_name} removed from the cluster")
        return Outcome.DELETED

    snapshot = snapshot_from_object(obj)
    if snapshot.state is None:
        logger.info(f"ResourceGraph {runner_name} status not yet available")
        return None

    logger.info(f"ResourceGraph {runner_name} state: {snapshot.raw_state}")
    outcome = evaluate(snapshot)
    if outcome is None and snapshot.resources_ready:
        logger.debug(f"ResourceGraph {runner_name} resources ready, waiting for state change")
    elif outcome is not None and snapshot.resources_ready:
        logger.info(f"ResourceGraph {runner_name} resources ready - runner completed")
    return outcome


def wait_for_instance(
    custom_api,
    template,
    session,
    context=None,
    policy=IndeterminatePolicy.SUCCESS,
    window=DEFAULT_WATCH_WINDOW,
):
    """
    Block until the instance reaches a terminal state.

    Returns on success or deletion. Raises RunnerFailedError when the job
    failed, WatchError on watch problems, and the context's own error once
    it is cancelled or past its deadline.
    """
    context = context or RunContext.background()
    runner_name = session.runner_name
    resource_version = None

    logger.info(f"Watching ResourceGraph instance: {runner_name}")

    while True:
        _stop_if_done(context)

        timeout_seconds = _window_seconds(context, window)
        kwargs = {
            "group": crd.GROUP,
            "version": crd.VERSION,
            "namespace": session.namespace,
            "plural": template.plural,
            "field_selector": f"metadata.name={runner_name}",
            "timeout_seconds": timeout_seconds,
            "_request_timeout": timeout_seconds + READ_TIMEOUT_SLACK,
        }
        if resource_version:
            kwargs["resource_version"] = resource_version

        w = watch.Watch()
        try:
            for event in w.stream(custom_api.list_namespaced_custom_object, **kwargs):
                resource_version = _resource_version(event.get("object")) or resource_version

                outcome = handle_event(event, runner_name)
                if outcome is not None:
                    resolve_outcome(outcome, runner_name, policy)
                    return outcome

                _stop_if_done(context)
        except ApiException as e:
            if e.status == 410 and resource_version:
                logger.debug(f"Resource version {resource_version} expired, re-listing {runner_name}")
                resource_version = None
                continue
            raise WatchError(f"failed to watch ResourceGraph instance: {describe_api_error(e)}") from e
        except urllib3.exceptions.HTTPError as e:
            raise WatchError(f"failed to watch ResourceGraph instance: {e}") from e
        finally:
            w.stop()

        logger.debug(f"Watch window of {timeout_seconds}s ended for {runner_name}, re-opening")


def _stop_if_done(context):
    err = context.error()
    if err is not None:
        logger.info("Context cancelled, stopping watch")
        raise err
