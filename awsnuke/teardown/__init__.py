"""Teardown orchestration engine.

Drives every registered resource type through list, wait-for-dependencies,
remove and retry-on-transient-error, in parallel across resource types.

Classes:
    Orchestrator: Runs one scheduler task per resource type and aggregates results
    ResourceScheduler: Per resource type state machine
    ResourceRegistry: Explicit driver registration with dependency validation
    BaseResourceDriver: Shared implementation of the driver contract
    TransientErrorClassifier: Retry-worthy error detection
    AuditStorage: YAML run logs
"""
