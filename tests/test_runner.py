"""End-to-end lifecycle tests for KRORunner."""

import pytest
import urllib3

from conftest import event, make_rgd, not_found, ready, server_error
from kro_runner.cleanup import StepOutcome
from kro_runner.context import RunContext
from kro_runner.errors import (
    CancelledError,
    CreateOutcomeUnknownError,
    EmptyJitConfigError,
    EmptyRunnerNameError,
    MissingSessionError,
    ResourceError,
    RunnerFailedError,
)
from kro_runner.runner import KRORunner
from kro_runner.session import RunnerSession
from kro_runner.status import Outcome


@pytest.fixture
def runner(core_api, custom_api):
    return KRORunner("default", core_api, custom_api, "test-scale-set", watch_window=5)


class TestLifecycle:
    def test_create_wait_delete(self, runner, core_api, custom_api, fake_watch):
        fake_watch(
            [
                event("ADDED", state="IN_PROGRESS"),
                event(state="ACTIVE"),
                event(state="ACTIVE", conditions=ready(), phase="Succeeded"),
            ]
        )

        session = runner.create_resources("runner-1", "cfg")
        body = custom_api.create_namespaced_custom_object.call_args.kwargs["body"]
        assert body["metadata"]["name"] == "runner-1"
        assert body["metadata"]["labels"]["actions.github.com/scale-set-name"] == "test-scale-set"
        assert body["metadata"]["ownerReferences"][0]["uid"] == "pod-uid-1234"
        assert body["metadata"]["ownerReferences"][0]["controller"] is False

        assert runner.wait_for_resource_graph(session) is Outcome.SUCCEEDED

        # Someone else removed the instance in the meantime
        custom_api.delete_namespaced_custom_object.side_effect = not_found()
        report = runner.delete_resources(session)
        assert report.ok
        assert report.outcome_of("instance") is StepOutcome.ABSENT

    def test_each_phase_rediscovers(self, runner, custom_api, fake_watch):
        fake_watch([event(state="DELETED")])

        session = runner.create_resources("runner-1", "cfg")
        runner.wait_for_resource_graph(session)
        runner.delete_resources(session)

        assert custom_api.list_cluster_custom_object.call_count == 3

    def test_delete_twice(self, runner, custom_api):
        session = runner.session_for("runner-1")
        assert runner.delete_resources(session).ok

        custom_api.delete_namespaced_custom_object.side_effect = not_found()
        assert runner.delete_resources(session).ok

    def test_resume_after_restart(self, runner, fake_watch):
        fake_watch([event(state="ACTIVE", conditions=ready(), phase="Succeeded")])
        session = runner.session_for("runner-1")
        assert session.namespace == "default"
        assert runner.wait_for_resource_graph(session) is Outcome.SUCCEEDED


class TestMissingSession:
    def test_wait_without_session(self, runner, custom_api):
        with pytest.raises(MissingSessionError):
            runner.wait_for_resource_graph(None)
        custom_api.list_cluster_custom_object.assert_not_called()

    def test_delete_without_session(self, runner, custom_api):
        with pytest.raises(MissingSessionError):
            runner.delete_resources(None)
        custom_api.delete_namespaced_custom_object.assert_not_called()

    def test_empty_runner_name_in_session(self, runner):
        with pytest.raises(MissingSessionError):
            runner.delete_resources(RunnerSession(runner_name=""))


class TestRun:
    def test_success_cleans_up(self, runner, custom_api, fake_watch):
        fake_watch([event(state="ACTIVE", conditions=ready(), phase="Succeeded")])

        report = runner.run("runner-1", "cfg")

        custom_api.delete_namespaced_custom_object.assert_called_once()
        assert report.ok

    def test_failure_still_cleans_up(self, runner, custom_api, fake_watch):
        fake_watch([event(state="FAILED")])

        with pytest.raises(RunnerFailedError):
            runner.run("runner-1", "cfg")
        custom_api.delete_namespaced_custom_object.assert_called_once()

    def test_cancelled_wait_cleans_up_with_fresh_context(self, runner, custom_api, fake_watch):
        context = RunContext()
        fake_watch([event("ADDED", state="IN_PROGRESS"), lambda: context.cancel("SIGTERM"), event(state="ACTIVE")])

        with pytest.raises(CancelledError):
            runner.run("runner-1", "cfg", context)
        custom_api.delete_namespaced_custom_object.assert_called_once()

    def test_cancelled_during_create_cleans_up_by_name(self, runner, core_api, custom_api):
        context = RunContext()

        def cancel_and_fail(**kwargs):
            context.cancel("SIGTERM")
            raise CancelledError()

        custom_api.create_namespaced_custom_object.side_effect = cancel_and_fail

        with pytest.raises(CancelledError):
            runner.run("runner-1", "cfg", context)
        assert custom_api.delete_namespaced_custom_object.call_args.kwargs["name"] == "runner-1"

    def test_signal_during_cleanup_does_not_stop_it(self, runner, custom_api, fake_watch):
        context = RunContext()
        fake_watch([event(state="ACTIVE", conditions=ready(), phase="Succeeded")])
        calls = []

        def list_rgds(**kwargs):
            calls.append(kwargs)
            if len(calls) == 3:
                # discovery for cleanup
                context.cancel("SIGTERM")
            return {"items": [make_rgd()]}

        custom_api.list_cluster_custom_object.side_effect = list_rgds

        report = runner.run("runner-1", "cfg", context)

        assert len(calls) == 3
        assert report.ok
        assert custom_api.delete_namespaced_custom_object.call_args.kwargs["name"] == "runner-1"

    def test_create_transport_error_cleans_up_by_name(self, runner, custom_api):
        custom_api.create_namespaced_custom_object.side_effect = urllib3.exceptions.ReadTimeoutError(
            None, "/apis/kro.run/v1alpha1", "Read timed out."
        )

        with pytest.raises(CreateOutcomeUnknownError, match="failed to create ResourceGraph instance"):
            runner.run("runner-1", "cfg")
        assert custom_api.delete_namespaced_custom_object.call_args.kwargs["name"] == "runner-1"

    def test_pod_read_transport_error_skips_cleanup(self, runner, core_api, custom_api):
        core_api.read_namespaced_pod.side_effect = urllib3.exceptions.MaxRetryError(None, "/api/v1/pods")

        with pytest.raises(ResourceError, match="failed to get orchestrator pod"):
            runner.run("runner-1", "cfg")
        custom_api.delete_namespaced_custom_object.assert_not_called()

    def test_failed_cleanup_is_reported(self, runner, custom_api, fake_watch, caplog):
        fake_watch([event(state="ACTIVE", conditions=ready(), phase="Succeeded")])
        custom_api.delete_namespaced_custom_object.side_effect = server_error()

        report = runner.run("runner-1", "cfg")

        assert not report.ok
        assert report.outcome_of("instance") is StepOutcome.FAILED
        assert "cleanup incomplete, failed steps: instance" in caplog.text

    def test_create_error_skips_cleanup(self, runner, core_api, custom_api):
        core_api.read_namespaced_pod.side_effect = not_found()

        with pytest.raises(ResourceError):
            runner.run("runner-1", "cfg")
        custom_api.delete_namespaced_custom_object.assert_not_called()

    @pytest.mark.parametrize(
        "runner_name,jit_config,error",
        [("", "cfg", EmptyRunnerNameError), ("runner-1", "", EmptyJitConfigError)],
    )
    def test_invalid_input_makes_no_calls(self, runner, core_api, custom_api, runner_name, jit_config, error):
        with pytest.raises(error):
            runner.run(runner_name, jit_config)
        core_api.read_namespaced_pod.assert_not_called()
        custom_api.list_cluster_custom_object.assert_not_called()
        custom_api.delete_namespaced_custom_object.assert_not_called()
