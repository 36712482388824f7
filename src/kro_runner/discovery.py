"""ResourceGraphDefinition discovery by scale-set label."""

import logging
from dataclasses import dataclass
from typing import Optional

import urllib3
from kubernetes.client.rest import ApiException

from . import crd
from .context import RunContext
from .errors import (
    AmbiguousTemplateError,
    DiscoveryError,
    MalformedTemplateError,
    TemplateNotFoundError,
)
from .k8s import describe_api_error
from .naming import ResourceNames

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateInfo:
    """Snapshot of a discovered RGD."""

    name: str
    namespace: Optional[str]
    kind: str  # Kind from the RGD schema, e.g. "PodRunner"
    plural: str  # Resource name of the instance collection, e.g. "podrunners"


def label_selector(scale_set_name):
    return f"{crd.SCALE_SET_LABEL}={scale_set_name}"


def _schema_kind(rgd):
    kind = (((rgd.get("spec") or {}).get("schema") or {}).get("kind"))
    if not isinstance(kind, str) or not kind:
        return None
    return kind


def find_template(custom_api, scale_set_name, context: Optional[RunContext] = None, names: Optional[ResourceNames] = None):
    """
    Find the single RGD labelled for a scale set.

    Raises TemplateNotFoundError for no match, AmbiguousTemplateError for
    several, MalformedTemplateError when spec.schema.kind is unusable.
    """
    context = context or RunContext.background()
    names = names or ResourceNames()
    selector = label_selector(scale_set_name)

    context.raise_if_done()
    logger.info(f"Discovering RGD with label {selector}")

    try:
        response = custom_api.list_cluster_custom_object(
            group=crd.GROUP,
            version=crd.VERSION,
            plural=crd.RGD_PLURAL,
            label_selector=selector,
            _request_timeout=context.request_timeout(),
        )
    except ApiException as e:
        raise DiscoveryError(f"failed to list RGDs: {describe_api_error(e)}") from e
    except urllib3.exceptions.HTTPError as e:
        raise DiscoveryError(f"failed to list RGDs: {e}") from e

    items = response.get("items", [])
    if not items:
        raise TemplateNotFoundError(f"no RGD found with label {selector}")
    if len(items) > 1:
        found = ", ".join(item.get("metadata", {}).get("name", "?") for item in items)
        raise AmbiguousTemplateError(
            f"multiple RGDs found with label {selector}, expected exactly one (found: {found})"
        )

    rgd = items[0]
    metadata = rgd.get("metadata", {})
    rgd_name = metadata.get("name", "")

    kind = _schema_kind(rgd)
    if kind is None:
        raise MalformedTemplateError(f"RGD {rgd_name} missing spec.schema.kind")

    info = TemplateInfo(
        name=rgd_name,
        namespace=metadata.get("namespace"),
        kind=kind,
        plural=names.resolve(kind),
    )

    logger.info(f"Discovered RGD: name={info.name}, namespace={info.namespace}, kind={info.kind}")
    return info
