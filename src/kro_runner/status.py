"""Interpretation of ResourceGraph instance status."""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from . import crd
from .errors import IndeterminateOutcomeError, RunnerFailedError

logger = logging.getLogger(__name__)


class InstanceState(enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = crd.STATE_IN_PROGRESS
    ACTIVE = crd.STATE_ACTIVE
    FAILED = crd.STATE_FAILED
    DELETED = crd.STATE_DELETED
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value):
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class Outcome(enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DELETED = "deleted"
    INDETERMINATE = "indeterminate"


class IndeterminatePolicy(enum.Enum):
    """What Wait does when resources are ready but the pod phase is unknown."""

    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


@dataclass(frozen=True)
class StatusSnapshot:
    """Status of one watch event; state is None until kro reports one."""

    state: Optional[InstanceState]
    raw_state: Optional[str]
    resources_ready: bool
    pod_phase: Optional[str]


def _resources_ready(conditions):
    for cond in conditions or []:
        if not isinstance(cond, dict):
            continue
        if cond.get("type") == crd.CONDITION_RESOURCES_READY and cond.get("status") == "True":
            return True
    return False


def _pod_phase(status):
    resources = status.get("resources")
    if not isinstance(resources, dict):
        return None
    pod = resources.get(crd.RUNNER_POD_RESOURCE)
    if not isinstance(pod, dict):
        return None
    pod_status = pod.get("status")
    if not isinstance(pod_status, dict):
        return None
    phase = pod_status.get("phase")
    return phase if isinstance(phase, str) and phase else None


def snapshot_from_object(obj):
    """Build a StatusSnapshot from an instance object."""
    status = obj.get("status") if isinstance(obj, dict) else None
    if not isinstance(status, dict):
        status = {}

    raw_state = status.get("state")
    if not isinstance(raw_state, str) or not raw_state:
        raw_state = None

    return StatusSnapshot(
        state=InstanceState.parse(raw_state),
        raw_state=raw_state,
        resources_ready=_resources_ready(status.get("conditions")),
        pod_phase=_pod_phase(status),
    )


def evaluate(snapshot):
    """Map a snapshot to a terminal Outcome, or None to keep waiting."""
    if snapshot.state is InstanceState.FAILED:
        return Outcome.FAILED
    if snapshot.state is InstanceState.DELETED:
        return Outcome.DELETED
    if snapshot.state is not InstanceState.ACTIVE or not snapshot.resources_ready:
        return None

    # ResourcesReady means every readyWhen holds, i.e. the runner pod finished
    if snapshot.pod_phase == crd.PHASE_SUCCEEDED:
        return Outcome.SUCCEEDED
    if snapshot.pod_phase == crd.PHASE_FAILED:
        return Outcome.FAILED
    return Outcome.INDETERMINATE


def resolve_outcome(outcome, runner_name, policy=IndeterminatePolicy.SUCCESS):
    """Return normally for a successful outcome, raise for a failed one."""
    if outcome is Outcome.SUCCEEDED:
        logger.info(f"Runner pod {runner_name} completed successfully")
        return
    if outcome is Outcome.DELETED:
        logger.info(f"ResourceGraph {runner_name} deleted")
        return
    if outcome is Outcome.FAILED:
        logger.error(f"Runner {runner_name} failed")
        raise RunnerFailedError()

    if policy is IndeterminatePolicy.SUCCESS:
        logger.warning(f"Runner {runner_name} completed (unable to determine pod phase, assuming success)")
        return
    if policy is IndeterminatePolicy.FAILURE:
        logger.error(f"Runner {runner_name} completed with unknown pod phase, treating as failure")
        raise RunnerFailedError()
    raise IndeterminateOutcomeError(
        f"resources of {runner_name} are ready but the runner pod phase is unknown"
    )
