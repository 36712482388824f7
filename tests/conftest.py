from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from kro_runner import crd, watcher


def make_rgd(name="podrunner-rgd", kind="PodRunner", scale_set="test-scale-set"):
    rgd = {
        "apiVersion": crd.API_VERSION,
        "kind": crd.RGD_KIND,
        "metadata": {"name": name, "labels": {crd.SCALE_SET_LABEL: scale_set}},
        "spec": {"schema": {"apiVersion": "v1alpha1"}},
    }
    if kind is not None:
        rgd["spec"]["schema"]["kind"] = kind
    return rgd


def make_instance(name="runner-1", state=None, conditions=None, phase=None, resource_version="1"):
    status = {}
    if state is not None:
        status["state"] = state
    if conditions is not None:
        status["conditions"] = conditions
    if phase is not None:
        status["resources"] = {crd.RUNNER_POD_RESOURCE: {"status": {"phase": phase}}}
    return {
        "apiVersion": crd.API_VERSION,
        "kind": "PodRunner",
        "metadata": {"name": name, "resourceVersion": resource_version},
        "spec": {"runnerName": name},
        "status": status,
    }


def ready(status="True"):
    return [{"type": crd.CONDITION_RESOURCES_READY, "status": status}]


def event(event_type="MODIFIED", **kwargs):
    return {"type": event_type, "object": make_instance(**kwargs)}


def not_found():
    return ApiException(status=404, reason="Not Found")


def server_error():
    return ApiException(status=500, reason="Internal Server Error")


class FakeWatch:
    """
    Stand-in for kubernetes.watch.Watch.

    Each stream() call consumes the next batch of events. An exception in
    a batch is raised at that point; a callable is invoked and skipped.
    """

    def __init__(self, *batches):
        self.batches = list(batches)
        self.calls = []
        self.stopped = 0

    def __call__(self):
        return self

    def stream(self, func, **kwargs):
        self.calls.append(kwargs)
        if not self.batches:
            raise AssertionError("watch re-opened more often than scripted")
        for item in self.batches.pop(0):
            if isinstance(item, Exception):
                raise item
            if callable(item):
                item()
                continue
            yield item

    def stop(self):
        self.stopped += 1


@pytest.fixture
def fake_watch(monkeypatch):
    def install(*batches):
        fake = FakeWatch(*batches)
        monkeypatch.setattr(watcher.watch, "Watch", fake)
        return fake

    return install


@pytest.fixture
def orchestrator_pod():
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name="runner-1", namespace="default", uid="pod-uid-1234"),
    )


@pytest.fixture
def core_api(orchestrator_pod):
    v1 = MagicMock()
    v1.read_namespaced_pod.return_value = orchestrator_pod
    return v1


@pytest.fixture
def custom_api():
    api = MagicMock()
    api.list_cluster_custom_object.return_value = {"items": [make_rgd()]}
    api.create_namespaced_custom_object.return_value = {}
    return api
