"""Tests for devchain.deploy.config and devchain.deploy.services."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from devchain.deploy.config import ComposeVariant, ExecutionContext, SignerRuntime, SignerSettings
from devchain.deploy.services import STANDARD_LOG_OPTIONS, ServiceDefinition


class TestExecutionContext:
    def test_defaults(self):
        ctx = ExecutionContext()
        assert ctx.verbose is False
        assert ctx.compose_variant is ComposeVariant.NONE
        assert ctx.runtime_binary == "docker"
        assert ctx.echo_output is False
        assert ctx.cancelled is False

    def test_copies_leave_original_untouched(self):
        ctx = ExecutionContext()
        logged = ctx.with_log_command()
        detected = ctx.with_compose_variant(ComposeVariant.LEGACY)

        assert logged.echo_output is True
        assert detected.compose_variant is ComposeVariant.LEGACY
        assert ctx.log_command is False
        assert ctx.compose_variant is ComposeVariant.NONE

    def test_cancelled_follows_event(self):
        event = asyncio.Event()
        ctx = ExecutionContext(cancel_event=event)
        assert ctx.cancelled is False
        event.set()
        assert ctx.cancelled is True


class TestSignerSettings:
    def test_defaults(self, monkeypatch):
        for var in ("DEVCHAIN_SIGNER_IMAGE", "DEVCHAIN_SIGNER_RUNTIME", "DEVCHAIN_VOLUME_CREATE_RETRIES"):
            monkeypatch.delenv(var, raising=False)
        settings = SignerSettings.from_env()
        assert settings.signer_image == "ghcr.io/hyperledger/firefly-signer:v0.9.1"
        assert settings.signer_runtime is SignerRuntime.FIREFLY
        assert settings.password == "correcthorsebatterystaple"
        assert settings.volume_create_retries == 3

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("DEVCHAIN_SIGNER_RUNTIME", "ethsigner")
        monkeypatch.setenv("DEVCHAIN_VOLUME_CREATE_RETRIES", "0")
        settings = SignerSettings.from_env()
        assert settings.signer_runtime is SignerRuntime.ETHSIGNER
        assert settings.volume_create_retries == 0

    def test_kwargs_beat_env(self, monkeypatch):
        monkeypatch.setenv("DEVCHAIN_HELPER_IMAGE", "busybox")
        assert SignerSettings.from_env(helper_image="alpine:3.19").helper_image == "alpine:3.19"

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            SignerSettings(volume_create_retries=-1)

    def test_backoff_from_env(self, monkeypatch):
        monkeypatch.setenv("DEVCHAIN_VOLUME_CREATE_BACKOFF", "0.25")
        assert SignerSettings.from_env().volume_create_backoff == 0.25

    @pytest.mark.parametrize(
        ("var", "value"),
        [
            ("DEVCHAIN_VOLUME_CREATE_RETRIES", "many"),
            ("DEVCHAIN_VOLUME_CREATE_BACKOFF", "-1"),
            ("DEVCHAIN_SIGNER_RUNTIME", "geth"),
        ],
    )
    def test_invalid_env_value_raises(self, monkeypatch, var, value):
        monkeypatch.setenv(var, value)
        with pytest.raises(ValidationError):
            SignerSettings.from_env()


class TestServiceDefinition:
    def test_qualified_volume_names(self):
        definition = ServiceDefinition(
            service_name="ethsigner",
            image="i",
            container_name="dev_ethsigner",
            volume_names=("ethsigner", "ethsigner_config"),
        )
        assert definition.qualified_volume_names("dev") == ["dev_ethsigner", "dev_ethsigner_config"]

    def test_logging_is_a_copy(self):
        definition = ServiceDefinition(service_name="a", image="i", container_name="c")
        assert definition.logging == STANDARD_LOG_OPTIONS
        assert definition.logging is not STANDARD_LOG_OPTIONS
