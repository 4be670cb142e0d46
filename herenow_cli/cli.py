"""
HereNow CLI - Main entry point.

Provides a command-line interface for sending MQTT commands to the
HereNow service.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .mqtt_client import MQTTCommandClient


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load a YAML command file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(config, dict) or "command" not in config:
        raise ValueError(f"{config_path} must be a mapping with a 'command' key")
    return config


def send_command(
    command: Dict[str, Any],
    service_id: str = "herenow",
    broker: str = "localhost",
    port: int = 1883,
    wait: bool = True,
) -> Optional[Dict[str, Any]]:
    """Send command to the service and (optionally) wait for its reply."""
    topic = f"herenow/{service_id}/commands"
    reply_topic = f"herenow/{service_id}/replies" if wait else None

    client = MQTTCommandClient(broker=broker, port=port)
    return client.send_command(topic, command, qos=1, reply_topic=reply_topic)


def build_command(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed arguments into a command payload."""
    if args.command in ('send', 'schedule', 'register-location-notification'):
        return load_yaml_config(args.config)

    if args.command == 'sample':
        command = {
            'command': 'location_sample',
            'latitude': args.latitude,
            'longitude': args.longitude,
            'accuracy_m': args.accuracy,
        }
        return command

    if args.command == 'add-region':
        return {
            'command': 'register_region',
            'region_id': args.region_id,
            'name': args.name or args.region_id,
            'latitude': args.latitude,
            'longitude': args.longitude,
            'radius_m': args.radius,
        }

    if args.command == 'remove-region':
        return {'command': 'unregister_region', 'region_id': args.region_id}

    if args.command == 'show':
        notification = {
            'id': args.notification_id,
            'title': args.title,
            'body': args.body,
            'category': args.category,
        }
        return {'command': 'show', 'notification': notification}

    if args.command == 'cancel':
        return {'command': 'cancel', 'notification_id': args.notification_id}

    if args.command == 'unregister-location-notification':
        return {'command': 'unregister_location_notification', 'notification_id': args.notification_id}

    if args.command == 'tap':
        return {'command': 'tap', 'notification_id': args.notification_id}

    if args.command == 'quiet-hours':
        return {
            'command': 'set_preferences',
            'preferences': {'quiet_hours_start': args.start, 'quiet_hours_end': args.end},
        }

    if args.command == 'category':
        return {
            'command': 'set_preferences',
            'preferences': {'categories': {args.category: args.state == 'on'}},
        }

    # Simple commands (no arguments): list-regions -> list_regions
    return {'command': args.command.replace('-', '_')}


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="HereNow CLI - Send MQTT commands to the HereNow service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Feed a position sample
  herenow-cli sample 37.7597 -122.4270

  # Geofences
  herenow-cli add-region dolores-park 37.7596 -122.4269 150 --name "Dolores Park"
  herenow-cli remove-region dolores-park
  herenow-cli list-regions

  # Notifications
  herenow-cli show hello "Hi" "Welcome to HereNow" --category system
  herenow-cli schedule config/commands/schedule_daily_reveal.yaml
  herenow-cli register-location-notification config/commands/register_park_notification.yaml
  herenow-cli cancel daily-reveal
  herenow-cli quiet-hours 22:00 07:00
  herenow-cli category social off

  # Simple commands (no arguments)
  herenow-cli pending
  herenow-cli cancel-all
  herenow-cli watch-ad
  herenow-cli status
  herenow-cli clear
"""
    )

    parser.add_argument("--service-id", default="herenow", help="Target service ID (default: herenow)")
    parser.add_argument("--broker", default="localhost", help="MQTT broker host (default: localhost)")
    parser.add_argument("--port", type=int, default=1883, help="MQTT broker port (default: 1883)")
    parser.add_argument("--no-wait", action="store_true", help="Do not wait for the service reply")

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    send = subparsers.add_parser('send', help='Send any command from a YAML file')
    send.add_argument('config', help='Path to command YAML')

    schedule = subparsers.add_parser('schedule', help='Schedule a notification from YAML')
    schedule.add_argument('config', help='Path to schedule command YAML')

    location_notification = subparsers.add_parser(
        'register-location-notification', help='Register a location notification from YAML'
    )
    location_notification.add_argument('config', help='Path to command YAML')

    unregister_ln = subparsers.add_parser(
        'unregister-location-notification', help='Remove a location notification'
    )
    unregister_ln.add_argument('notification_id')

    sample = subparsers.add_parser('sample', help='Send a position sample')
    sample.add_argument('latitude', type=float)
    sample.add_argument('longitude', type=float)
    sample.add_argument('--accuracy', type=float, default=10.0, help='Accuracy in meters (default: 10)')

    add_region = subparsers.add_parser('add-region', help='Register a geofence')
    add_region.add_argument('region_id')
    add_region.add_argument('latitude', type=float)
    add_region.add_argument('longitude', type=float)
    add_region.add_argument('radius', type=float, help='Radius in meters')
    add_region.add_argument('--name', default=None)

    remove_region = subparsers.add_parser('remove-region', help='Unregister a geofence')
    remove_region.add_argument('region_id')

    show = subparsers.add_parser('show', help='Show a notification now')
    show.add_argument('notification_id')
    show.add_argument('title')
    show.add_argument('body')
    show.add_argument('--category', default='system')

    cancel = subparsers.add_parser('cancel', help='Cancel a scheduled notification')
    cancel.add_argument('notification_id')

    tap = subparsers.add_parser('tap', help='Acknowledge a delivered notification')
    tap.add_argument('notification_id')

    quiet = subparsers.add_parser('quiet-hours', help='Set quiet hours (HH:MM HH:MM)')
    quiet.add_argument('start')
    quiet.add_argument('end')

    category = subparsers.add_parser('category', help='Enable/disable a notification category')
    category.add_argument('category')
    category.add_argument('state', choices=['on', 'off'])

    for name, help_text in (
        ('list-regions', 'List geofences'),
        ('pending', 'List pending notifications'),
        ('cancel-all', 'Cancel all scheduled notifications'),
        ('watch-ad', 'Record an ad watch'),
        ('status', 'Query service status'),
        ('clear', 'Clear all app data'),
    ):
        subparsers.add_parser(name, help=help_text)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        command = build_command(args)
        reply = send_command(command, args.service_id, args.broker, args.port, wait=not args.no_wait)
        if reply is not None:
            print(json.dumps(reply, indent=2, default=str))
            if not reply.get('ok', False):
                sys.exit(2)
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
