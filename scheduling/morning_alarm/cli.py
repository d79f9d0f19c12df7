"""
CLI for manual testing of the morning alarm core
"""

import sys
import threading

import click

from .capabilities import resolve_capabilities
from .config import MorningAlarmConfig
from .delivery import AlarmDeliveryHandler, DeliveryPolicy, command_player
from .errors import InvalidTimeFormat
from .logging_utils import setup_logging, get_logger
from .media_cache import create_media_caches
from .models import AlarmRequest, AssetKind, SchedulingStatus
from .notification_host import APSchedulerNotificationHost
from .orchestrator import build_orchestrator
from .trigger_time import compute_next_occurrence, format_alarm_date, format_alarm_time

logger = get_logger(__name__)

KIND_CHOICES = [kind.value for kind in AssetKind]


@click.group()
@click.option('--log-level', default=None, help='Log level')
@click.option('--log-format', default=None, type=click.Choice(['text', 'json']), help='Log format')
@click.pass_context
def cli(ctx, log_level, log_format):
    """Morning Alarm CLI - resolve wake times, cache audio and run the alarm"""
    config = MorningAlarmConfig.from_env()
    setup_logging(log_level=log_level or config.log_level, log_format=log_format or "text")

    ctx.ensure_object(dict)
    ctx.obj['config'] = config
    ctx.obj['capabilities'] = resolve_capabilities(config)


@cli.command(name='next')
@click.argument('wake_time')
def next_occurrence(wake_time):
    """Show when WAKE_TIME (HH:MM) next occurs"""
    try:
        instant = compute_next_occurrence(wake_time)
    except InvalidTimeFormat as e:
        click.echo(str(e))
        sys.exit(2)

    click.echo(f"{format_alarm_time(instant)} {format_alarm_date(instant)} ({instant.isoformat()})")


@cli.command()
@click.argument('kind', type=click.Choice(KIND_CHOICES))
@click.argument('source')
@click.pass_context
def cache(ctx, kind, source):
    """Cache SOURCE (data: URI or URL) as the KIND asset"""
    caches = create_media_caches(ctx.obj['config'].media, ctx.obj['capabilities'])
    media = caches[AssetKind(kind)]

    result = media.save(source)
    if result is None:
        click.echo(f"Could not cache {kind} asset: {media.last_error}")
        sys.exit(1)
    click.echo(f"Cached {kind} asset: {result}")


@cli.command()
@click.pass_context
def clear(ctx):
    """Remove both cached assets"""
    caches = create_media_caches(ctx.obj['config'].media, ctx.obj['capabilities'])
    for media in caches.values():
        media.remove()
    click.echo("Cached assets removed")


@cli.command()
@click.argument('wake_time')
@click.argument('name')
@click.argument('source')
@click.option('--sound-source', help='Separate source for the notification sound')
@click.pass_context
def run(ctx, wake_time, name, source, sound_source):
    """Schedule the alarm and wait in the foreground until it plays"""
    config = ctx.obj['config']
    capabilities = ctx.obj['capabilities']

    host = APSchedulerNotificationHost()
    host.start()
    orchestrator = build_orchestrator(config, capabilities, host)
    delivered = threading.Event()

    handler = AlarmDeliveryHandler(orchestrator.caches[AssetKind.PLAYBACK], command_player(config.player_command))

    try:
        with DeliveryPolicy(handler).install(host) as policy:
            policy.add_delivered_callback(lambda identifier: delivered.set())

            session = orchestrator.schedule(AlarmRequest(
                wake_time=wake_time, name=name, audio_source=source, notification_sound_source=sound_source
            ))
            if session.status is not SchedulingStatus.SCHEDULED:
                click.echo(f"Scheduling failed: {session.error} - {session.detail}")
                sys.exit(1)

            instant = session.trigger_instant
            click.echo(f"Alarm set for {format_alarm_time(instant)} {format_alarm_date(instant)}")
            if session.caveat:
                click.echo(f"Note: {session.caveat}")

            try:
                while not delivered.wait(timeout=1.0):
                    pass
                click.echo("Alarm delivered")
            except KeyboardInterrupt:
                click.echo("\nCancelling alarm...")
                orchestrator.cancel()
                click.echo("Alarm cancelled")
    finally:
        host.shutdown()


@cli.command()
@click.pass_context
def status(ctx):
    """Show configuration and cached assets"""
    config = ctx.obj['config']
    capabilities = ctx.obj['capabilities']
    caches = create_media_caches(config.media, capabilities)

    click.echo("Morning Alarm Status:")
    click.echo(f"  Media directory: {config.media.base_dir}")
    click.echo(f"  Delivery tier: {capabilities.delivery_tier.value}")
    click.echo(f"  Durable storage: {'Yes' if capabilities.durable_storage else 'No'}")
    click.echo(f"  Permission mode: {config.permission_mode}")
    click.echo(f"  Transfer timeout: {config.media.transfer_timeout_s}s ({config.media.transfer_attempts} attempt(s))")

    for kind, media in caches.items():
        path = media.load()
        click.echo(f"  {kind.value}: {path or 'not cached'}")


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
