from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sitewatch.core.alarm.alarm_engine import AlertStateMachine
from sitewatch.core.config.channel_registry import ChannelRegistry
from sitewatch.core.config.yaml_config import AppConfig, load_app_config
from sitewatch.core.state.persistence import JsonStatePersistence
from sitewatch.core.state.rule_store import AlertRuleStore
from sitewatch.core.state.series_buffer import LiveSeriesBuffer
from sitewatch.notification.notification_thread import NotificationWorkerThread
from sitewatch.notification.webhook_notifier import WebhookConfig, WebhookNotifier
from sitewatch.runtime.app_runtime import AppRuntime, AppRuntimeConfig
from sitewatch.runtime.event_bus import EventBus
from sitewatch.runtime.subscriptions import SubscriptionRegistry
from sitewatch.services.controller import MonitoringController


@dataclass(frozen=True)
class AppWiring:
    """Everything a front end needs to run the system."""
    config: AppConfig
    registry: ChannelRegistry
    buffer: LiveSeriesBuffer
    rules: AlertRuleStore
    engine: AlertStateMachine
    controller: MonitoringController
    notifier: Optional[NotificationWorkerThread]
    runtime: AppRuntime


def build_rule_store(cfg: AppConfig) -> AlertRuleStore:
    store = AlertRuleStore(max_events=cfg.alerts.max_events)
    if cfg.alerts.state_path:
        persistence = JsonStatePersistence(Path(cfg.alerts.state_path).expanduser())
        rules, events = persistence.load()
        store.load(rules, events)
        store.persist = persistence.save
    return store


def build_notifier(cfg: AppConfig) -> Optional[NotificationWorkerThread]:
    if cfg.webhook is None:
        return None

    auth_header = cfg.webhook.auth_header
    if auth_header and not auth_header.startswith("Bearer "):
        auth_header = f"Bearer {auth_header}"

    return NotificationWorkerThread(
        notifiers=[
            WebhookNotifier(
                WebhookConfig(
                    url=cfg.webhook.url,
                    auth_header=auth_header,
                    timeout_s=cfg.webhook.timeout_s,
                    verify_tls=cfg.webhook.verify_tls,
                )
            )
        ]
    )


def build_app_system(config_path: Optional[str] = None, cfg: Optional[AppConfig] = None) -> AppWiring:
    cfg = cfg or load_app_config(config_path)

    # --- CHANNELS ---
    registry = ChannelRegistry()
    registry.load(cfg.channels)
    subscriptions = SubscriptionRegistry(registry=registry)

    # --- STATE ---
    buffer = LiveSeriesBuffer()
    rules = build_rule_store(cfg)

    # --- ALERTS ---
    engine = AlertStateMachine(defaults=cfg.alerts.defaults)

    # --- NOTIFICATIONS ---
    notifier = build_notifier(cfg)
    if notifier is not None:
        notifier.start()

    bus = EventBus()

    # --- CONTROLLER ---
    controller = MonitoringController(
        buffer=buffer,
        rules=rules,
        engine=engine,
        subscriptions=subscriptions,
        time_range=cfg.time_range,
        bus=bus if notifier is not None else None,
        form_limits=cfg.alerts.form,
    )
    # Runtime threads are not started yet, so this runs on the caller's thread.
    controller.set_channels(cfg.subscribe)

    # --- RUNTIME ---
    runtime = AppRuntime(
        cfg=AppRuntimeConfig(
            feed_host=cfg.transport.host,
            feed_port=cfg.transport.port,
            tick_interval_s=cfg.tick_interval_s,
            connect_timeout_s=cfg.transport.timeout_s,
            reconnect_delay_s=cfg.transport.reconnect_delay_s,
            max_reconnect_delay_s=cfg.transport.max_reconnect_delay_s,
        ),
        controller=controller,
        bus=bus,
        store=rules,
        notifier=notifier,
    )

    return AppWiring(
        config=cfg,
        registry=registry,
        buffer=buffer,
        rules=rules,
        engine=engine,
        controller=controller,
        notifier=notifier,
        runtime=runtime,
    )
