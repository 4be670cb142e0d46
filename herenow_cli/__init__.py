"""
HereNow CLI - Command-line interface for the HereNow service.

Sends MQTT commands to the service without hand-writing JSON.

Usage:
    herenow-cli sample 37.7597 -122.4270
    herenow-cli schedule config/commands/schedule_daily_reveal.yaml
    herenow-cli pending
    herenow-cli status
"""

__version__ = "0.1.0"
