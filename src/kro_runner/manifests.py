"""Kubernetes resource templates."""

import json

from . import crd


def create_owner_reference(pod):
    """Non-controller owner reference to the orchestrating pod.

    kro's own controller keeps primary ownership; this one only lets the
    garbage collector remove the instance if the pod disappears.
    """
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "name": pod.metadata.name,
        "uid": pod.metadata.uid,
        "controller": False,
        "blockOwnerDeletion": False,
    }


def create_instance_manifest(template, session, owner_refs=None):
    """Create ResourceGraph instance manifest for a runner."""
    runner_name = session.runner_name

    return {
        "apiVersion": crd.API_VERSION,
        "kind": template.kind,
        "metadata": {
            "name": runner_name,
            "namespace": session.namespace,
            "labels": {
                crd.SCALE_SET_LABEL: session.scale_set_name,
                crd.RUNNER_NAME_LABEL: runner_name,
            },
            "annotations": {
                crd.RUNNER_METADATA_ANNOTATION: json.dumps(session.metadata()),
            },
            "ownerReferences": owner_refs or [],
        },
        # The RGD resolves the ARC-created secret from the runner name
        "spec": {
            "runnerName": runner_name,
        },
    }
