"""Service orchestration layer: coordinates multi-service workflows.

Modules:
- transitions: status and payment state machines.
- order_service: order creation, reads and transitions (OrderLifecycleManager).
- payment_service: "pay now" and gateway webhook handling on top of the manager.
"""
