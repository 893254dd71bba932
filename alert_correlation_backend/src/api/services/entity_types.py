"""Friendly labels for (entity type, domain) pairs.

The table is data: a deployment can replace it with a JSON file of the form

    {"version": 1, "labels": [{"type": "APPLICATION", "domain": "APM", "label": "APM Service"}, ...]}

pointed to by ENTITY_TYPE_LABELS_PATH. Adding a new entity type never needs a code change.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


LABELS_VERSION = 1

DEFAULT_LABELS: Dict[Tuple[str, str], str] = {
    ("APPLICATION", "APM"): "APM Service",
    ("APPLICATION", "BROWSER"): "Browser App",
    ("APPLICATION", "MOBILE"): "Mobile App",
    ("HOST", "INFRA"): "Host",
    ("CONTAINER", "INFRA"): "Container",
    ("KUBERNETESCLUSTER", "INFRA"): "Kubernetes Cluster",
    ("KUBERNETES_POD", "INFRA"): "Kubernetes Pod",
    ("AWSLAMBDAFUNCTION", "INFRA"): "Lambda Function",
    ("AWSRDSDBINSTANCE", "INFRA"): "RDS Instance",
    ("AZUREVIRTUALMACHINE", "INFRA"): "Azure VM",
    ("MONITOR", "SYNTH"): "Synthetic Monitor",
    ("SECURE_CREDENTIAL", "SYNTH"): "Secure Credential",
    ("PRIVATE_LOCATION", "SYNTH"): "Private Location",
    ("SERVICE", "EXT"): "OpenTelemetry Service",
    ("SERVICE_LEVEL", "EXT"): "Service Level",
    ("WORKLOAD", "NR1"): "Workload",
    ("DASHBOARD", "VIZ"): "Dashboard",
}


@dataclass(frozen=True)
class EntityTypeLabels:
    """Versioned (type, domain) -> label lookup."""

    version: int = LABELS_VERSION
    labels: Mapping[Tuple[str, str], str] = field(default_factory=lambda: dict(DEFAULT_LABELS))

    # PUBLIC_INTERFACE
    def friendly(self, entity_type: Optional[str], domain: Optional[str]) -> Optional[str]:
        """Return the display label for an entity, or its raw type when the pair is unmapped."""
        key = ((entity_type or "").upper(), (domain or "").upper())
        return self.labels.get(key, entity_type)


def _parse_label_rows(rows: Iterable[dict]) -> Dict[Tuple[str, str], str]:
    out: Dict[Tuple[str, str], str] = {}
    for row in rows:
        etype = str(row.get("type") or "").strip().upper()
        domain = str(row.get("domain") or "").strip().upper()
        label = str(row.get("label") or "").strip()
        if etype and domain and label:
            out[(etype, domain)] = label
    return out


# PUBLIC_INTERFACE
def parse_entity_type_labels(doc: dict) -> EntityTypeLabels:
    """Build a label table from its JSON document form; raises ValueError on a malformed document."""
    if not isinstance(doc, dict) or not isinstance(doc.get("labels"), list):
        raise ValueError("entity type labels document must be an object with a 'labels' list")
    version = int(doc.get("version", LABELS_VERSION))
    return EntityTypeLabels(version=version, labels=_parse_label_rows(doc["labels"]))


# PUBLIC_INTERFACE
def load_entity_type_labels(path: Optional[str]) -> EntityTypeLabels:
    """Load the label table from a JSON file, falling back to the built-in table."""
    if not path:
        return EntityTypeLabels()

    try:
        doc = json.loads(Path(path).read_text(encoding="utf-8"))
        labels = parse_entity_type_labels(doc)
    except Exception:
        logger.exception("Failed reading entity type labels at %s; using built-in table", path)
        return EntityTypeLabels()

    logger.info("Loaded %s entity type labels (version=%s) from %s", len(labels.labels), labels.version, path)
    return labels
