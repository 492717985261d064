"""
Crop/Decimate Test Suite
========================

Property-based tests for critical invariants.

Philosophy:
- Focus on invariants (properties that must always be true)
- Test critical paths (transform, delivery modes, MQTT planes)
- NOT 100% coverage - only key behaviors

Modules:
- test_transform: Crop + decimation + calibration invariants
- test_coordinator: Delivery modes, timers, lazy activation
- test_requests: Image request parsing
- test_mqtt_commands: Service commands (status/stats/stop)
- test_planes: Control/Data Plane + Frame Source message handling
"""
