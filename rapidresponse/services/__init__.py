"""Rapid Response Central services.

Dependency order, leaves first:
- timer_registry: timers and the tick driver
- session_registry: emergencies and checklists
- alert_service: team-facing alerts
- command_layer: commands spanning the registries
"""
