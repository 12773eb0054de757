# src/nodekeeper/models/labels.py
"""Well-known label, annotation and finalizer keys shared with the cluster."""

GROUP = "karpenter.sh"
API_VERSION = f"{GROUP}/v1"

NODEPOOL_LABEL_KEY = f"{GROUP}/nodepool"
NODE_REGISTERED_LABEL_KEY = f"{GROUP}/registered"
TERMINATION_FINALIZER = f"{GROUP}/termination"

NODEPOOL_HASH_ANNOTATION_KEY = f"{GROUP}/nodepool-hash"
NODEPOOL_HASH_VERSION_ANNOTATION_KEY = f"{GROUP}/nodepool-hash-version"

# Bumped whenever the hash calculation changes in a way that makes stored
# hashes incomparable with freshly computed ones.
NODEPOOL_HASH_VERSION = "v3"

LABEL_INSTANCE_TYPE_STABLE = "node.kubernetes.io/instance-type"

# NodeClaim condition types
CONDITION_LAUNCHED = "Launched"
CONDITION_REGISTERED = "Registered"
CONDITION_DRIFTED = "Drifted"

# Node condition types
NODE_CONDITION_READY = "Ready"

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"
