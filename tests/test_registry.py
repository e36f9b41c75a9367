"""Tests for agentrelay.providers.registry module."""

from unittest.mock import MagicMock

import pytest

from agentrelay.providers.errors import ProviderConfigurationError
from agentrelay.providers.registry import ProviderRegistry, register_all_backends
from agentrelay.providers.types import InstallationStatus, ModelDefinition, ProviderRegistration
from tests.fakes import make_mock_provider


def _registration(provider=None, **kwargs) -> ProviderRegistration:
    return ProviderRegistration(factory=lambda: provider or MagicMock(), **kwargs)


class TestRouting:
    """Tests for resolve_provider_name."""

    def test_empty_registry_raises(self):
        """Resolving with nothing registered is a configuration error."""
        with pytest.raises(ProviderConfigurationError):
            ProviderRegistry().resolve_provider_name("anything")

    def test_higher_priority_wins_over_registration_order(self):
        """A later registration with higher priority is checked first."""
        registry = ProviderRegistry()
        registry.register("low", _registration(can_handle_model=lambda m: True, priority=1))
        registry.register("high", _registration(can_handle_model=lambda m: True, priority=9))
        assert registry.resolve_provider_name("x") == "high"

    def test_equal_priority_keeps_registration_order(self):
        """Ties resolve to whichever backend was registered first."""
        registry = ProviderRegistry()
        registry.register("first", _registration(can_handle_model=lambda m: True, priority=3))
        registry.register("second", _registration(can_handle_model=lambda m: True, priority=3))
        assert registry.resolve_provider_name("x") == "first"

    def test_routing_is_deterministic(self, builtin_registry):
        """The same model always resolves to the same backend."""
        results = {builtin_registry.resolve_provider_name("cursor-sonnet-4.5") for _ in range(20)}
        assert results == {"cursor"}

    def test_name_prefix_used_when_no_predicate_matches(self):
        """A "<name>-" prefix routes to a backend without a predicate."""
        registry = ProviderRegistry()
        registry.register("base", _registration())
        registry.register("other", _registration())
        assert registry.resolve_provider_name("other-model") == "other"

    def test_unknown_model_falls_back_to_baseline(self):
        """The first registered backend serves unclaimed models."""
        registry = ProviderRegistry()
        registry.register("base", _registration())
        registry.register("other", _registration(can_handle_model=lambda m: m == "o"))
        assert registry.resolve_provider_name("mystery") == "base"

    def test_predicate_receives_lowercased_model(self):
        """Predicates see the lowercased model string."""
        seen = []
        registry = ProviderRegistry()
        registry.register("base", _registration(can_handle_model=lambda m: seen.append(m) or False))
        registry.resolve_provider_name("Cursor-AUTO")
        assert seen == ["cursor-auto"]

    @pytest.mark.parametrize(
        ("model", "expected"),
        [
            ("cursor-auto", "cursor"),
            ("cursor-gpt-5", "cursor"),
            ("sonnet-4.5", "cursor"),
            ("opencode/big-pickle", "opencode"),
            ("amazon-bedrock/anthropic.claude-sonnet-4-5-20250929-v1:0", "opencode"),
            ("codex-gpt-5.1-codex-max", "codex"),
            ("codex-gpt-5.2", "codex"),
            ("gpt-5.1-codex", "cursor"),
            ("sonnet", "claude"),
            ("claude-opus-4-5-20251101", "claude"),
            ("totally-unknown", "claude"),
        ],
    )
    def test_builtin_routing(self, builtin_registry, model, expected):
        """Built-in backends claim their own model ids."""
        assert builtin_registry.resolve_provider_name(model) == expected


class TestConstruction:
    """Tests for resolve_provider and get_provider_by_name."""

    def test_instances_are_cached(self):
        """The factory runs once per backend."""
        factory = MagicMock(return_value=MagicMock())
        registry = ProviderRegistry()
        registry.register("base", ProviderRegistration(factory=factory))
        assert registry.resolve_provider("x") is registry.resolve_provider("y")
        factory.assert_called_once()

    def test_reregistering_drops_cached_instance(self):
        """register() replaces the cached instance."""
        first, second = MagicMock(), MagicMock()
        registry = ProviderRegistry()
        registry.register("base", _registration(first))
        assert registry.resolve_provider("x") is first
        registry.register("base", _registration(second))
        assert registry.resolve_provider("x") is second

    def test_factory_failure_falls_back_to_baseline(self):
        """A backend that fails to construct is replaced by the baseline."""
        baseline = MagicMock()
        registry = ProviderRegistry()
        registry.register("base", _registration(baseline))
        registry.register(
            "broken",
            ProviderRegistration(
                factory=MagicMock(side_effect=RuntimeError("boom")),
                can_handle_model=lambda m: True,
                priority=1,
            ),
        )
        assert registry.resolve_provider("anything") is baseline

    def test_baseline_failure_raises(self):
        """If the baseline itself cannot be built, a configuration error is raised."""
        registry = ProviderRegistry()
        registry.register("base", ProviderRegistration(factory=MagicMock(side_effect=RuntimeError("boom"))))
        with pytest.raises(ProviderConfigurationError, match="boom"):
            registry.resolve_provider("anything")

    def test_lookup_by_alias(self, builtin_registry):
        """Aliases resolve to the registered backend."""
        assert builtin_registry.get_provider_by_name("anthropic").name == "claude"
        assert builtin_registry.get_provider_by_name("OpenAI").name == "codex"

    def test_unknown_name_returns_none(self, builtin_registry):
        """Unknown names and aliases return None."""
        assert builtin_registry.get_provider_by_name("gemini") is None

    def test_unregister(self):
        """Unregistered backends no longer resolve."""
        registry = ProviderRegistry()
        registry.register("base", _registration())
        registry.register("other", _registration())
        registry.unregister("base")
        assert registry.names == ["other"]
        assert registry.baseline_name == "other"


class TestCheckAllProviders:
    """Tests for check_all_providers."""

    def test_reports_every_backend_in_registration_order(self, mock_registry):
        """Every registered backend appears, in order."""
        statuses = mock_registry.check_all_providers()
        assert list(statuses) == ["alpha", "beta"]
        assert statuses["alpha"].installed is True
        assert statuses["beta"].installed is False

    def test_detector_failure_is_isolated(self):
        """One raising detector does not hide the other results."""
        good = make_mock_provider("good")
        bad = make_mock_provider("bad")
        bad.detect_installation.side_effect = RuntimeError("probe crashed")
        registry = ProviderRegistry()
        registry.register("good", _registration(good))
        registry.register("bad", _registration(bad))

        statuses = registry.check_all_providers()

        assert statuses["good"].installed is True
        assert statuses["bad"] == InstallationStatus(installed=False, error="probe crashed")

    def test_empty_registry(self):
        """An empty registry reports nothing."""
        assert ProviderRegistry().check_all_providers() == {}


class TestModels:
    """Tests for model listing and capability lookup."""

    def test_all_available_models_flattens(self, mock_registry):
        """Models of every backend are listed, baseline first."""
        assert [m.id for m in mock_registry.all_available_models()] == ["alpha-1", "beta-1"]

    def test_vision_lookup_by_id_or_model_string(self, mock_registry):
        """Vision support is found by id or by CLI model string."""
        assert mock_registry.model_supports_vision("alpha-1") is False
        assert mock_registry.model_supports_vision("b1") is True

    def test_unknown_model_assumes_vision(self, mock_registry):
        """Unknown models fail open."""
        assert mock_registry.model_supports_vision("nope") is True

    def test_vision_uses_routed_backend(self, builtin_registry):
        """Only the backend that serves the model is consulted."""
        assert builtin_registry.resolve_provider_name("codex-gpt-5.1-codex") == "codex"
        assert builtin_registry.model_supports_vision("codex-gpt-5.1-codex") is True

    def test_vision_matches_without_vendor_prefix(self, builtin_registry):
        """A bare Cursor model string matches its prefixed declaration."""
        assert builtin_registry.resolve_provider_name("gpt-5.2") == "cursor"
        assert builtin_registry.model_supports_vision("gpt-5.2") is False

    def test_vision_fails_open_when_models_cannot_be_listed(self):
        """A backend that cannot list its models assumes vision."""
        broken = make_mock_provider("broken")
        broken.available_models.side_effect = RuntimeError("boom")
        registry = ProviderRegistry()
        registry.register("broken", _registration(broken))
        assert registry.model_supports_vision("anything") is True

    def test_builtin_models_have_unique_ids(self, builtin_registry):
        """Declared ids are backend-qualified and never collide."""
        ids = [m.id for m in builtin_registry.all_available_models()]
        assert len(ids) == len(set(ids))


class TestRegisterAllBackends:
    """Tests for register_all_backends."""

    def test_registration_order(self, builtin_registry):
        """Claude is registered first and is therefore the baseline."""
        assert builtin_registry.names == ["claude", "cursor", "opencode", "codex"]
        assert builtin_registry.baseline_name == "claude"

    def test_settings_flow_into_providers(self):
        """Probe timeouts and the WSL distribution come from settings."""
        from agentrelay.config.settings import Settings

        settings = Settings(
            cursor_wsl_distribution="Debian",
            probe_timeout_seconds=3.0,
            version_timeout_seconds=2.0,
        )
        registry = register_all_backends(ProviderRegistry(), settings=settings)
        cursor = registry.get_provider_by_name("cursor")
        assert cursor.wsl_distribution == "Debian"
        assert cursor.probe_timeout == 3.0
        assert cursor.version_timeout == 2.0
        assert cursor.debug_raw_output is None

    def test_no_side_effects_on_import(self):
        """A fresh registry is empty until backends are registered."""
        assert ProviderRegistry().names == []

    def test_model_definitions_are_model_definition_instances(self, builtin_registry):
        """Every backend declares ModelDefinition values."""
        assert all(isinstance(m, ModelDefinition) for m in builtin_registry.all_available_models())
