"""Linear execution of the setup wizard steps."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from vault_onboarding.migration.exceptions import MigrationError
from vault_onboarding.retry import RetryExhaustedException
from vault_onboarding.vault.exceptions import VaultError
from vault_onboarding.wizard import steps
from vault_onboarding.wizard.context import WizardContext
from vault_onboarding.wizard.exceptions import (
    ExternalCommandError,
    WizardCancelled,
    WizardStepError,
)
from vault_onboarding.wizard.steps import WizardServices

logger = logging.getLogger(__name__)

StepFunction = Callable[[WizardContext, WizardServices], WizardContext]

# Failures a step may leave to propagate; reported against that step
STEP_FAILURES = (
    VaultError,
    MigrationError,
    ExternalCommandError,
    RetryExhaustedException,
    OSError,
)


@dataclass(frozen=True)
class WizardStep:
    name: str
    title: str
    run: StepFunction


DEFAULT_STEPS = (
    WizardStep("mode_selection", "Selecting Vault Mode", steps.mode_selection),
    WizardStep("auto_unseal_choice", "Configuring Auto-Unseal", steps.auto_unseal_choice),
    WizardStep("welcome", "Welcome", steps.welcome),
    WizardStep("prerequisites", "Checking System Prerequisites", steps.prerequisites),
    WizardStep("configure_address", "Configuring Vault Server", steps.configure_address),
    WizardStep("github_auth", "Setting up GitHub Authentication", steps.github_auth),
    WizardStep("start_service", "Starting Vault Service", steps.start_service),
    WizardStep("initialize", "Initializing Vault", steps.initialize),
    WizardStep("authenticate", "Authenticating with Vault", steps.authenticate),
    WizardStep("template_init", "Template Initialization", steps.template_init),
    WizardStep("migrate_secrets", "Migrating Secrets to Vault", steps.migrate_secrets),
    WizardStep("final_verification", "Final Verification", steps.final_verification),
    WizardStep("completion", "Summary", steps.completion),
)


class SetupWizard:
    """Runs the steps in order; the first failure ends the run.

    Completed steps are neither retried nor rolled back.
    """

    def __init__(self, services: WizardServices, wizard_steps: Optional[Sequence[WizardStep]] = None):
        self.services = services
        self.steps = tuple(wizard_steps if wizard_steps is not None else DEFAULT_STEPS)

    def run(self, ctx: WizardContext) -> WizardContext:
        """Run every step and return the final context.

        Raises:
            WizardCancelled: If the user declined to continue
            WizardStepError: If a step failed
        """
        total = len(self.steps)
        for number, step in enumerate(self.steps, start=1):
            logger.info("Step %d/%d: %s", number, total, step.title)
            ctx = ctx.evolve(current_step=step.name)
            try:
                ctx = step.run(ctx, self.services)
            except (WizardCancelled, WizardStepError):
                raise
            except STEP_FAILURES as e:
                raise WizardStepError(step.name, str(e)) from e
        return ctx
