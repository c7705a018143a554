"""Tests for AlertSampler — determinism, enrichment, fixed-value alerts."""

from __future__ import annotations

import json

import pytest

from src.core.config import GeneratorConfig
from src.core.types import SCHEMA_VERSION, Alert
from src.generator.exceptions import DistributionError
from src.generator.sampler import (
    ENVIRONMENTS,
    REGIONS,
    AlertSampler,
    boilerplate_alert,
    canonical_test_alert,
    custom_alert,
    is_test_alert,
)

SEVERITY = "HIGH:30,MEDIUM:30,LOW:25,CRITICAL:15"
SOURCE = "api:50,db:50"
NAME = "timeout:50,error:50"


def _sampler(seed: int | None = 42, **kw: str) -> AlertSampler:
    return AlertSampler(
        severity_dist=kw.get("severity", SEVERITY),
        source_dist=kw.get("source", SOURCE),
        name_dist=kw.get("name", NAME),
        seed=seed,
    )


class TestConstruction:
    def test_explicit_seed_kept(self) -> None:
        assert _sampler(seed=42).seed == 42

    @pytest.mark.parametrize("seed", [0, None])
    def test_zero_or_missing_seed_uses_clock(self, seed: int | None) -> None:
        assert _sampler(seed=seed).seed != 0

    def test_invalid_distribution_fails_loudly(self) -> None:
        with pytest.raises(DistributionError, match="invalid source distribution"):
            _sampler(source="api:50")

    def test_from_config(self) -> None:
        cfg = GeneratorConfig(seed=7, severity_dist="LOW:100")
        sampler = AlertSampler.from_config(cfg)
        assert sampler.seed == 7
        assert sampler.severity_table.as_dict() == {"LOW": 100}
        assert sampler.source_table.total_weight == 100
        assert len(sampler.name_table) == 10


class TestGenerate:
    def test_same_seed_same_fields(self) -> None:
        a, b = _sampler(seed=1234), _sampler(seed=1234)
        for _ in range(500):
            x, y = a.generate(), b.generate()
            assert x.same_fields(y)
            assert x.alert_id != y.alert_id

    def test_different_seeds_diverge(self) -> None:
        a, b = _sampler(seed=1), _sampler(seed=2)
        seq_a = [a.generate() for _ in range(200)]
        seq_b = [b.generate() for _ in range(200)]
        assert not all(x.same_fields(y) for x, y in zip(seq_a, seq_b))

    def test_values_come_from_tables(self) -> None:
        sampler = _sampler()
        for _ in range(300):
            alert = sampler.generate()
            assert alert.severity in {"HIGH", "MEDIUM", "LOW", "CRITICAL"}
            assert alert.source in {"api", "db"}
            assert alert.name in {"timeout", "error"}
            assert alert.schema_version == SCHEMA_VERSION

    def test_context_enrichment(self) -> None:
        sampler = _sampler(seed=5)
        alerts = [sampler.generate() for _ in range(2_000)]
        envs = [a.context["environment"] for a in alerts if "environment" in a.context]
        regions = [a.context["region"] for a in alerts if "region" in a.context]
        assert set(envs) <= set(ENVIRONMENTS)
        assert set(regions) <= set(REGIONS)
        # 30% / 20% enrichment rates, with generous slack
        assert 0.25 < len(envs) / len(alerts) < 0.35
        assert 0.15 < len(regions) / len(alerts) < 0.25
        assert all(set(a.context) <= {"environment", "region"} for a in alerts)

    def test_unique_ids(self) -> None:
        sampler = _sampler()
        ids = {sampler.generate().alert_id for _ in range(1_000)}
        assert len(ids) == 1_000


class TestFixedAlerts:
    def test_boilerplate(self) -> None:
        alert = boilerplate_alert()
        assert (alert.severity, alert.source, alert.name) == ("HIGH", "api", "timeout")
        assert alert.context == {}

    def test_canonical_test_alert(self) -> None:
        alert = canonical_test_alert()
        assert (alert.severity, alert.source, alert.name) == ("LOW", "test-source", "test-name")
        assert is_test_alert(alert)

    def test_fresh_ids_each_call(self) -> None:
        assert canonical_test_alert().alert_id != canonical_test_alert().alert_id
        assert boilerplate_alert().alert_id != boilerplate_alert().alert_id

    def test_custom_alert_defaults(self) -> None:
        assert is_test_alert(custom_alert())

    def test_custom_alert_fields(self) -> None:
        alert = custom_alert("CRITICAL", "db", "")
        assert (alert.severity, alert.source, alert.name) == ("CRITICAL", "db", "test-name")
        assert not is_test_alert(alert)


class TestAlertEncoding:
    def test_json_omits_empty_context(self) -> None:
        payload = json.loads(boilerplate_alert().to_json())
        assert "context" not in payload
        assert set(payload) == {
            "alert_id", "schema_version", "event_ts", "severity", "source", "name",
        }

    def test_json_includes_context(self) -> None:
        alert = Alert(severity="LOW", source="db", name="cpu", context={"region": "eu-west-1"})
        payload = json.loads(alert.to_json())
        assert payload["context"] == {"region": "eu-west-1"}
        assert payload["schema_version"] == 1
        assert isinstance(payload["event_ts"], int)
