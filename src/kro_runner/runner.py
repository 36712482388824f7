"""Runner lifecycle: create, wait for and delete a ResourceGraph instance."""

import logging
from typing import Optional

from .cleanup import CleanupReport, StepOutcome, delete_instance
from .config import DEFAULT_CLEANUP_TIMEOUT
from .context import RunContext
from .discovery import TemplateInfo, find_template
from .errors import CreateOutcomeUnknownError
from .instance import create_instance, validate_inputs
from .naming import ResourceNames
from .session import RunnerSession, require_session
from .status import IndeterminatePolicy
from .watcher import DEFAULT_WATCH_WINDOW, wait_for_instance

logger = logging.getLogger(__name__)


class KRORunner:
    """
    Manages one runner's lifecycle through kro ResourceGraph instances.

    create_resources() returns the session that wait_for_resource_graph()
    and delete_resources() take. The three calls are independent, so each
    one discovers the RGD again.
    """

    def __init__(
        self,
        namespace,
        core_api,
        custom_api,
        scale_set_name,
        indeterminate_policy=IndeterminatePolicy.SUCCESS,
        watch_window=DEFAULT_WATCH_WINDOW,
        resource_names: Optional[ResourceNames] = None,
    ):
        self.namespace = namespace
        self.core_api = core_api
        self.custom_api = custom_api
        self.scale_set_name = scale_set_name
        self.indeterminate_policy = indeterminate_policy
        self.watch_window = watch_window
        self.resource_names = resource_names or ResourceNames()

    def discover(self, context: Optional[RunContext] = None) -> TemplateInfo:
        return find_template(self.custom_api, self.scale_set_name, context, self.resource_names)

    def session_for(self, runner_name, secret_name=None) -> RunnerSession:
        """Session for a runner created earlier, e.g. before a restart."""
        return RunnerSession.for_runner(
            runner_name,
            secret_name=secret_name,
            namespace=self.namespace,
            scale_set_name=self.scale_set_name,
        )

    def create_resources(self, runner_name, jit_config, context: Optional[RunContext] = None) -> RunnerSession:
        return create_instance(
            self.core_api,
            self.custom_api,
            self.namespace,
            self.scale_set_name,
            runner_name,
            jit_config,
            context,
            self.resource_names,
        )

    def wait_for_resource_graph(self, session, context: Optional[RunContext] = None):
        session = require_session(session, "wait_for_resource_graph")
        context = context or RunContext.background()
        template = self.discover(context)
        return wait_for_instance(
            self.custom_api,
            template,
            session,
            context,
            policy=self.indeterminate_policy,
            window=self.watch_window,
        )

    def delete_resources(self, session, context: Optional[RunContext] = None) -> CleanupReport:
        session = require_session(session, "delete_resources")
        return delete_instance(self.core_api, self.custom_api, session, self.discover, context)

    def run(self, runner_name, jit_config, context: Optional[RunContext] = None, cleanup_timeout=DEFAULT_CLEANUP_TIMEOUT):
        """
        Create, wait, then always delete.

        Cleanup gets a fresh context so neither a signal nor the overall
        deadline stops it. Errors from create and wait are re-raised after
        cleanup; otherwise the CleanupReport is returned.
        """
        validate_inputs(runner_name, jit_config)
        context = context or RunContext.background()
        session = None
        create_unknown = False
        try:
            try:
                session = self.create_resources(runner_name, jit_config, context)
            except CreateOutcomeUnknownError:
                create_unknown = True
                raise
            logger.info("ResourceGraph runner resources created successfully")

            self.wait_for_resource_graph(session, context)
            logger.info("ResourceGraph runner completed successfully")
        finally:
            if session is None and (create_unknown or context.done()):
                # Create may have been interrupted after the instance was submitted
                session = self.session_for(runner_name)
            report = None
            if session is not None:
                report = self.delete_resources(session, RunContext.for_cleanup(cleanup_timeout))
                if report.ok:
                    logger.info("ResourceGraph runner deleted successfully")
                else:
                    failed = ", ".join(s.step for s in report.steps if s.outcome is StepOutcome.FAILED)
                    logger.error(f"ResourceGraph runner cleanup incomplete, failed steps: {failed}")
        return report
