"""kro API constants and label/annotation keys."""

# kro group and version (shared by RGDs and the instances they generate)
GROUP = "kro.run"
VERSION = "v1alpha1"

# API version string
API_VERSION = f"{GROUP}/{VERSION}"

# ResourceGraphDefinition collection (cluster scoped)
RGD_PLURAL = "resourcegraphdefinitions"
RGD_KIND = "ResourceGraphDefinition"

# Label used to select the RGD for a scale set, also stamped on instances
SCALE_SET_LABEL = "actions.github.com/scale-set-name"
RUNNER_NAME_LABEL = "kro.run/runner-name"

# Annotation carrying runner metadata as JSON
RUNNER_METADATA_ANNOTATION = "actions.github.com/runner-metadata"

# Instance status states reported by kro
STATE_ACTIVE = "ACTIVE"
STATE_FAILED = "FAILED"
STATE_DELETED = "DELETED"
STATE_IN_PROGRESS = "IN_PROGRESS"

# Condition set once every readyWhen expression holds
CONDITION_RESOURCES_READY = "ResourcesReady"

# Resource id of the compute pod inside the graph status
RUNNER_POD_RESOURCE = "runnerPod"

# Pod phases
PHASE_SUCCEEDED = "Succeeded"
PHASE_FAILED = "Failed"
