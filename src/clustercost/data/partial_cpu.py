# src/clustercost/data/partial_cpu.py

"""
Canonical core counts for burstable (shared-core) instance types.

GKE advertises the same core count for every E2 shared-core machine,
whatever fraction of a core the VM is actually entitled to. Billing
follows the entitlement, so the advertised count is replaced by the
value below and the CPU cost is scaled to match.

Source: https://cloud.google.com/compute/docs/general-purpose-machines#sharedcore

Entries may be added but never removed: removing one changes the
emitted cpu_cores for every node of that type.
"""

PARTIAL_CPU_MAP = {
    # --- GCP E2 shared-core ---
    "e2-micro": 0.25,
    "e2-small": 0.5,
    "e2-medium": 1.0,
}
