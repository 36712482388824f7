"""Best-effort removal of a runner's ResourceGraph instance and secret."""

import enum
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from . import crd
from .context import RunContext
from .errors import RunnerError
from .k8s import describe_api_error, is_not_found

logger = logging.getLogger(__name__)


class StepOutcome(enum.Enum):
    DELETED = "deleted"
    ABSENT = "absent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class StepResult:
    step: str
    outcome: StepOutcome
    error: Optional[str] = None


@dataclass
class CleanupReport:
    runner_name: str
    steps: List[StepResult] = field(default_factory=list)

    def add(self, step, outcome, error=None):
        self.steps.append(StepResult(step, outcome, str(error) if error is not None else None))

    @property
    def ok(self):
        return all(s.outcome is not StepOutcome.FAILED for s in self.steps)

    def outcome_of(self, step):
        for s in self.steps:
            if s.step == step:
                return s.outcome
        return None


def _delete_instance(custom_api, template, session, context, report):
    runner_name = session.runner_name
    try:
        context.raise_if_done()
        custom_api.delete_namespaced_custom_object(
            group=crd.GROUP,
            version=crd.VERSION,
            namespace=session.namespace,
            plural=template.plural,
            name=runner_name,
            _request_timeout=context.request_timeout(),
        )
    except Exception as e:
        if is_not_found(e):
            logger.info(f"ResourceGraph instance {runner_name} already deleted")
            report.add("instance", StepOutcome.ABSENT)
            return
        logger.error(f"Failed to delete ResourceGraph instance {runner_name}: {describe_api_error(e)}")
        report.add("instance", StepOutcome.FAILED, describe_api_error(e))
        return

    logger.info(f"Deleted ResourceGraph instance: {runner_name}")
    report.add("instance", StepOutcome.DELETED)


def _delete_secret(v1, session, context, report):
    secret_name = session.secret_name
    try:
        context.raise_if_done()
        v1.delete_namespaced_secret(
            name=secret_name,
            namespace=session.namespace,
            _request_timeout=context.request_timeout(),
        )
    except Exception as e:
        if is_not_found(e):
            logger.info(f"JIT secret {secret_name} already deleted")
            report.add("secret", StepOutcome.ABSENT)
            return
        logger.error(f"Failed to delete JIT secret {secret_name}: {describe_api_error(e)}")
        report.add("secret", StepOutcome.FAILED, describe_api_error(e))
        return

    logger.info(f"Deleted JIT secret: {secret_name}")
    report.add("secret", StepOutcome.DELETED)


def delete_instance(v1, custom_api, session, discover, context=None):
    """
    Delete the instance and the recorded secret, never raising.

    discover is a callable returning the TemplateInfo; if it fails the
    instance step is skipped and cleanup continues with the secret.
    """
    context = context or RunContext.background()
    report = CleanupReport(runner_name=session.runner_name)

    logger.info(f"Cleaning up ResourceGraph resources for runner: {session.runner_name}")

    template = None
    try:
        template = discover(context)
    except RunnerError as e:
        logger.warning(f"Failed to discover RGD for cleanup: {e}")
        report.add("discovery", StepOutcome.FAILED, e)
    except Exception as e:
        logger.warning(f"Failed to discover RGD for cleanup: {describe_api_error(e)}")
        report.add("discovery", StepOutcome.FAILED, describe_api_error(e))

    if template is not None:
        _delete_instance(custom_api, template, session, context, report)
    else:
        report.add("instance", StepOutcome.SKIPPED)

    if session.secret_name:
        _delete_secret(v1, session, context, report)
    else:
        report.add("secret", StepOutcome.SKIPPED)

    if report.ok:
        logger.info(f"Cleanup finished for runner: {session.runner_name}")
    else:
        failed = ", ".join(s.step for s in report.steps if s.outcome is StepOutcome.FAILED)
        logger.warning(f"Cleanup for runner {session.runner_name} incomplete, failed steps: {failed}")
    return report
