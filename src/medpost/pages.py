"""Create-post page: identity resolution, access gate and form wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from medpost.gate import AccessGate
from medpost.identity import IdentityResolver
from medpost.interfaces import Redirector, Scheduler
from medpost.models.config import GateConfig, SubmissionConfig
from medpost.models.enums import GateState
from medpost.models.identity import Identity, Session
from medpost.pipeline import PostForm, SubmissionPipeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoticeView:
    """Blocking notice rendered instead of the form."""

    state: GateState
    notice: str
    redirect_to: str | None
    redirect_after_s: float | None


@dataclass(frozen=True)
class FormView:
    """The create-post form for an authorized doctor."""

    display_name: str
    submit_disabled: bool
    error_message: str | None
    success_message: str | None


PageView = NoticeView | FormView


class CreatePostPage:
    """One visit to the create-post page.

    The form object exists only after the gate admits the actor, so it can
    never be rendered to an unauthorized visitor.
    """

    def __init__(
        self,
        resolver: IdentityResolver,
        pipeline: SubmissionPipeline,
        redirector: Redirector,
        scheduler: Scheduler,
        *,
        gate_config: GateConfig | None = None,
        submission_config: SubmissionConfig | None = None,
    ) -> None:
        gate_cfg = gate_config or GateConfig()
        self._resolver = resolver
        self._pipeline = pipeline
        self._submission_config = submission_config or SubmissionConfig()
        self.gate = AccessGate(
            redirector,
            scheduler,
            redirect_to=gate_cfg.redirect_to,
            delay_s=gate_cfg.redirect_delay_s,
        )
        self.identity: Identity | None = None
        self.form: PostForm | None = None

    async def open(self, session: Session | None) -> PageView:
        """Resolve the visitor and feed the result to the gate."""
        identity = await self._resolver.resolve(session)
        self.identity = identity
        self.gate.resolve(identity.has_doctor_capability)
        if self.gate.allows_form and self.form is None:
            self.form = PostForm(
                self._pipeline,
                identity,
                success_redirect=self._submission_config.success_redirect,
            )
        return self.render()

    def render(self) -> PageView:
        notice = self.gate.notice
        if notice is not None or self.form is None:
            denied = self.gate.state != GateState.PENDING
            return NoticeView(
                state=self.gate.state,
                notice=notice or "",
                redirect_to=self.gate.redirect_to if denied else None,
                redirect_after_s=self.gate.delay_s if self.gate.redirect_pending else None,
            )
        return FormView(
            display_name=self.identity.display_name if self.identity else "",
            submit_disabled=self.form.submit_disabled,
            error_message=self.form.error_message,
            success_message=self.form.success_message,
        )

    def close(self) -> None:
        self.gate.close()
