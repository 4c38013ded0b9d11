"""
Tests for the concrete migration steps against the in-memory control plane.
"""

import logging

import pytest

from pgmigrate.core.exceptions import (
    AbortCleanly,
    AddonAlreadyInstalled,
    ControlPlaneError,
    MigrationError,
    NeedsCompensation,
)
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.types import StepKind
from pgmigrate.steps import (
    CheckSource,
    EnsureBackupService,
    Maintenance,
    ProvisionDatabase,
    ProvisionedDatabase,
    RebindConfig,
    ScaleZero,
    find_rebindings,
    parse_binding,
)

APP = "my-app"


class TestCheckSource:
    """Tests for the pre-flight source check."""

    def test_passes_when_source_bound(self, api):
        """Test nothing is published or registered when the source exists."""
        outcome = CheckSource(api, APP).perform(ForwardRegistry())

        assert outcome.more_rollbacks == ()
        assert outcome.forward is None
        assert api.mutations == []

    @pytest.mark.parametrize("config_vars", [{}, {"SHARED_DATABASE_URL": ""}])
    def test_aborts_when_source_missing(self, make_api, config_vars):
        """Test a missing or empty source variable aborts cleanly."""
        api = make_api(config_vars=config_vars)

        with pytest.raises(AbortCleanly) as exc_info:
            CheckSource(api, APP).perform(ForwardRegistry())

        assert exc_info.value.message == "No SHARED_DATABASE_URL found: cannot migrate."

    def test_custom_source_var(self, make_api):
        """Test the message names the configured source variable."""
        with pytest.raises(AbortCleanly, match="No LEGACY_URL found"):
            CheckSource(make_api(), APP, source_var="LEGACY_URL").perform(ForwardRegistry())


class TestEnsureBackupService:
    """Tests for transfer service discovery."""

    def test_installs_and_publishes_endpoint(self, api, urls):
        """Test the endpoint read after provisioning is the forward payload."""
        outcome = EnsureBackupService(api, APP).perform(ForwardRegistry())

        assert ("provision_addon", (APP, "pgbackups:plus")) in api.calls
        assert outcome.forward == {"transfer_url": urls["backups"]}
        assert outcome.more_rollbacks == ()

    def test_already_installed_counts_as_success(self, api, urls):
        """Test AddonAlreadyInstalled is tolerated."""
        api.addons.add("pgbackups:plus")
        api.config_vars["PGBACKUPS_URL"] = urls["backups"]

        outcome = EnsureBackupService(api, APP).perform(ForwardRegistry())

        assert outcome.forward == {"transfer_url": urls["backups"]}

    def test_other_provisioning_errors_propagate(self, api):
        """Test any other ControlPlaneError is re-raised as is."""
        api.fail["provision_addon"] = ControlPlaneError("Payment required", 402)

        with pytest.raises(ControlPlaneError, match="Payment required"):
            EnsureBackupService(api, APP).perform(ForwardRegistry())

    def test_aborts_without_endpoint(self, api):
        """Test a missing endpoint variable aborts cleanly."""
        api.fail["provision_addon"] = AddonAlreadyInstalled("already installed", 422)

        with pytest.raises(AbortCleanly, match="No PGBACKUPS_URL found"):
            EnsureBackupService(api, APP).perform(ForwardRegistry())


class TestParseBinding:
    """Tests for extracting the attached config var."""

    def test_matches_attached_line(self):
        """Test the binding is found on its own line of a multi-line message."""
        response = {"message": "Database has been created\nAttached as HEROKU_POSTGRESQL_CRIMSON_URL\n"}

        assert parse_binding(response) == "HEROKU_POSTGRESQL_CRIMSON_URL"

    @pytest.mark.parametrize(
        "response",
        [
            {},
            {"message": None},
            {"message": "Attached as DATABASE_URL"},
            {"message": "Now Attached as HEROKU_POSTGRESQL_RED_URL"},
        ],
    )
    def test_no_match(self, response):
        """Test responses without a well-formed line give None."""
        assert parse_binding(response) is None


class TestProvisionDatabase:
    """Tests for provisioning the destination database."""

    def test_publishes_binding_and_config_snapshot(self, api, urls):
        """Test the payload carries binding, snapshot and URL helpers."""
        outcome = ProvisionDatabase(api, APP).perform(ForwardRegistry())

        payload = outcome.forward
        assert isinstance(payload, ProvisionedDatabase)
        assert payload.binding == "HEROKU_POSTGRESQL_RED_URL"
        assert payload.source_url == urls["old"]
        assert payload.target_url == urls["new"]
        assert payload.config["SECRET_KEY"] == "abc"

    def test_enqueues_rebind_and_registers_nothing(self, api):
        """Test RebindConfig is the only follow-up and no rollback is registered."""
        outcome = ProvisionDatabase(api, APP).perform(ForwardRegistry())

        assert len(outcome.more_actions) == 1
        assert isinstance(outcome.more_actions[0], RebindConfig)
        assert outcome.more_rollbacks == ()

    def test_rebind_can_be_disabled(self, api):
        """Test rebind=False enqueues nothing."""
        outcome = ProvisionDatabase(api, APP, rebind=False).perform(ForwardRegistry())

        assert outcome.more_actions == ()

    def test_unparseable_response_is_a_fault(self, api):
        """Test an unexpected provisioning message raises MigrationError."""
        api.provision_addon = lambda app, addon: {"message": "Something else"}

        with pytest.raises(MigrationError, match="Could not find the attached config var"):
            ProvisionDatabase(api, APP).perform(ForwardRegistry())

    def test_aborts_if_source_vanished(self, api):
        """Test the source binding is re-checked after provisioning."""
        original = api.provision_addon

        def provision(app, addon):
            response = original(app, addon)
            del api.config_vars["SHARED_DATABASE_URL"]
            return response

        api.provision_addon = provision

        with pytest.raises(AbortCleanly, match="No SHARED_DATABASE_URL found"):
            ProvisionDatabase(api, APP).perform(ForwardRegistry())

    def test_binding_missing_from_config(self, api):
        """Test a binding absent from the re-read config is a fault."""
        api.provision_addon = lambda app, addon: {"message": "Attached as HEROKU_POSTGRESQL_BLUE_URL"}

        with pytest.raises(MigrationError, match="HEROKU_POSTGRESQL_BLUE_URL was attached"):
            ProvisionDatabase(api, APP).perform(ForwardRegistry())


class TestMaintenance:
    """Tests for the maintenance mode step."""

    def test_enables_and_registers(self, api):
        """Test success turns maintenance on and registers the step."""
        step = Maintenance(api, APP)

        outcome = step.perform(ForwardRegistry())

        assert api.maintenance is True
        assert outcome.more_rollbacks == (step,)

    def test_rollback_disables(self, api):
        """Test rollback switches maintenance off."""
        step = Maintenance(api, APP)
        step.perform(ForwardRegistry())

        step.rollback()

        assert api.maintenance is False
        assert api.mutations[-1] == ("set_maintenance", (APP, False))

    def test_failure_needs_compensation(self, api):
        """Test a failed enable is wrapped so the step gets rolled back."""
        cause = ControlPlaneError("timeout")
        api.fail["set_maintenance"] = lambda args: cause if args[1] else None
        step = Maintenance(api, APP)

        with pytest.raises(NeedsCompensation) as exc_info:
            step.perform(ForwardRegistry())

        assert exc_info.value.cause is cause
        step.rollback()
        assert api.calls[-1] == ("set_maintenance", (APP, False))

    def test_rollback_before_perform_is_noop(self, api):
        """Test rollback of a never-performed step does nothing."""
        Maintenance(api, APP).rollback()

        assert api.calls == []


class TestScaleZero:
    """Tests for scaling processes down and back up."""

    def test_scales_every_type_to_zero(self, api):
        """Test every running type is scaled to zero and counts captured."""
        step = ScaleZero(api, APP)

        outcome = step.perform(ForwardRegistry())

        assert api.counts == {"web": 0, "worker": 0}
        assert step.old_counts == {"web": 2, "worker": 1}
        assert outcome.more_rollbacks == (step,)

    def test_rollback_restores_counts(self, api):
        """Test rollback restores the recorded counts."""
        step = ScaleZero(api, APP)
        step.perform(ForwardRegistry())

        step.rollback()

        assert api.counts == {"web": 2, "worker": 1}

    def test_no_processes(self, make_api, caplog):
        """Test an application with no processes logs and registers."""
        api = make_api()
        step = ScaleZero(api, APP)

        with caplog.at_level(logging.INFO, logger="pgmigrate.steps.scale"):
            outcome = step.perform(ForwardRegistry())

        assert "No active processes to scale down" in caplog.text
        assert outcome.more_rollbacks == (step,)
        assert api.mutations == []

    def test_reading_counts_failure_is_generic(self, api):
        """Test a failure before anything changed is not a compensation case."""
        api.fail["get_process_counts"] = ControlPlaneError("boom")
        step = ScaleZero(api, APP)

        with pytest.raises(ControlPlaneError):
            step.perform(ForwardRegistry())

        assert step.old_counts is None
        step.rollback()
        assert api.mutations == []

    def test_scaling_failure_needs_compensation(self, api):
        """Test a partial scale-down is compensated with the full counts."""
        api.fail["set_process_count"] = lambda args: ControlPlaneError("nope") if args[1] == "worker" else None
        step = ScaleZero(api, APP)

        with pytest.raises(NeedsCompensation):
            step.perform(ForwardRegistry())

        api.fail.clear()
        step.rollback()
        assert api.counts == {"web": 2, "worker": 1}

    def test_rollback_before_perform_is_noop(self, api):
        """Test rollback without captured counts does nothing."""
        ScaleZero(api, APP).rollback()

        assert api.calls == []


class TestRebindConfig:
    """Tests for pointing config vars at the new database."""

    def _forward(self, api):
        registry = ForwardRegistry()
        registry.record(
            StepKind.PROVISION,
            ProvisionDatabase(api, APP, rebind=False).perform(ForwardRegistry()).forward,
        )
        return registry

    def test_find_rebindings(self):
        """Test every variable holding the old URL is found."""
        config_vars = {"A": "old", "B": "new", "C": "old"}

        assert find_rebindings(config_vars, "old") == ["A", "C"]

    def test_rebinds_all_matching_vars_at_once(self, api, urls):
        """Test one put_config_vars call rebinds every matching var."""
        forward = self._forward(api)
        step = RebindConfig(api, APP)

        outcome = step.perform(forward)

        assert outcome.more_rollbacks == ()
        assert api.mutations[-1] == (
            "put_config_vars",
            (APP, {"SHARED_DATABASE_URL": urls["new"], "DATABASE_URL": urls["new"]}),
        )
        assert api.config_vars["SECRET_KEY"] == "abc"

    def test_failure_needs_compensation_and_rollback_restores(self, api, urls):
        """Test a failed write is compensated by rebinding to the old URL."""
        forward = self._forward(api)
        api.fail["put_config_vars"] = ControlPlaneError("conflict", 409)
        step = RebindConfig(api, APP)

        with pytest.raises(NeedsCompensation):
            step.perform(forward)

        api.fail.clear()
        step.rollback()
        assert api.config_vars["DATABASE_URL"] == urls["old"]
        assert api.config_vars["SHARED_DATABASE_URL"] == urls["old"]

    def test_rollback_before_perform_is_noop(self, api):
        """Test rollback without captured state does nothing."""
        RebindConfig(api, APP).rollback()

        assert api.calls == []

    def test_nothing_to_rebind(self, api):
        """Test no write is made when no var holds the old URL."""
        forward = self._forward(api)
        api.config_vars["SHARED_DATABASE_URL"] = "postgres://elsewhere"
        api.config_vars["DATABASE_URL"] = "postgres://elsewhere"

        RebindConfig(api, APP).perform(forward)

        assert not any(name == "put_config_vars" for name, _ in api.calls)
