"""Workflow step handlers.

Each handler consumes one classified event, checks its guards and emits at
most one outbound record per effect. Handlers keep no state between calls;
everything they know comes from the event, the correlation context it
carries, or a lookup in the chat transcript.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional, Protocol

from pydantic import ValidationError

from .classify import (
    ClassifiedEvent,
    FormSubmissionEvent,
    MessageActionEvent,
    ReactionEvent,
    SlashCommandEvent,
    WebhookEvent,
    WorkerOutputEvent,
)
from .config import IssueflowConfig
from .constants import (
    ASSIGN_REACTION,
    ASSIGNED_REACTION,
    CLOSED_REACTION,
    CREATE_COMMAND_PREFIX,
    KIND_ASSIGN,
    KIND_CREATE,
    KIND_PROJECT,
    KIND_SANITIZE,
    KIND_TITLE,
    LOADING_TITLE,
    SANITIZE_REACTION,
    SANITIZED_REACTION,
    SETUP_AI_DESCRIPTION,
    SETUP_AI_TEXT,
    SETUP_AI_TITLE,
    WEBHOOK_ACTION_ASSIGNED,
    WEBHOOK_ACTION_CLOSED,
)
from .contracts import (
    CleanupRequest,
    ReactionRequest,
    StatusMessage,
    TitleGenerationOutput,
    WorkItem,
)
from .correlation import (
    CorrelationContext,
    MissingContextField,
    UnexpectedState,
    WorkflowState,
    expect_state,
    new_context,
    require,
    to_message_metadata,
)
from .forms import build_issue_modal
from .lookup import MessageLocation, TranscriptSearch
from .transports import BaseTransport
from .urls import (
    extract_issue_number,
    extract_issue_url,
    normalize_issue_url,
    parse_repo_full_name,
    repo_from_issue_url,
    shell_quote,
)

logger = logging.getLogger(__name__)


class ViewClient(Protocol):
    async def open_view(self, trigger_id: str, view: dict) -> str: ...

    async def update_view(self, view_id: str, view: dict) -> None: ...


class WorkflowHandlers:
    """One coroutine per workflow transition, selected by event kind."""

    def __init__(
        self,
        config: IssueflowConfig,
        transport: BaseTransport,
        views: ViewClient,
        search: TranscriptSearch,
    ) -> None:
        self._config = config
        self._transport = transport
        self._views = views
        self._search = search
        self._by_kind: Dict[str, Callable[..., Awaitable[None]]] = {
            "slash-command": self.open_form,
            "form-submission": self.create_issue,
            "worker-output": self.handle_output,
            "emoji-reaction": self.handle_reaction,
            "message-action": self.generate_title,
            "external-webhook": self.handle_webhook,
        }

    async def handle(self, event: ClassifiedEvent) -> None:
        """Run the step for ``event``; abandon it if its context does not fit."""
        try:
            await self._by_kind[event.kind](event)
        except (MissingContextField, UnexpectedState) as e:
            logger.warning(f"Abandoning {event.kind} event: {e}")

    # ------------------------------------------------------------------
    # Requested -> Submitted
    # ------------------------------------------------------------------

    async def open_form(self, event: SlashCommandEvent) -> None:
        logger.info(f"Received {event.command} command from user {event.user_name}")
        text = event.text.strip()
        if text == SETUP_AI_TEXT:
            modal = build_issue_modal(SETUP_AI_TITLE, SETUP_AI_DESCRIPTION, True)
        else:
            modal = build_issue_modal(text)
        await self._views.open_view(event.trigger_id, modal)
        logger.info("Modal opened successfully")

    async def create_issue(self, event: FormSubmissionEvent) -> None:
        form = event.form
        logger.info(f"Received issue form submission from user {event.username}")
        if not form.repo or not form.title:
            logger.warning("Missing required fields: repo or title")
            return

        repo = parse_repo_full_name(form.repo, self._config.github.org)
        command = (
            "gh issue create --repo " + shell_quote(repo)
            + " --title " + shell_quote(form.title)
        )
        if form.description:
            command += " --body " + shell_quote(form.description)
        if form.assign_to_copilot:
            command += " --assignee @copilot"

        ctx = new_context(
            WorkflowState.SUBMITTED,
            repo=repo,
            title=form.title,
            username=event.username,
            addToProject=form.add_to_project,
            assignedToCopilot=form.assign_to_copilot,
        )
        await self._submit(KIND_CREATE, repo, command, ctx)
        logger.info(f"Issue creation command sent to executor for repo: {repo}")

    # ------------------------------------------------------------------
    # Executor output
    # ------------------------------------------------------------------

    async def handle_output(self, event: WorkerOutputEvent) -> None:
        if event.type == KIND_CREATE:
            await self.record_created(event)
        elif event.type == KIND_SANITIZE:
            await self.sanitize_complete(event)
        elif event.type == KIND_TITLE:
            await self.title_generated(event)
        elif event.type in (KIND_PROJECT, KIND_ASSIGN):
            logger.info(f"Executor finished {event.type}: {event.command}")

    async def record_created(self, event: WorkerOutputEvent) -> None:
        """Submitted -> Created: announce the new issue in the status channel."""
        ctx = _context_of(event)
        expect_state(ctx.state, WorkflowState.SUBMITTED)
        require(ctx, "repo", "title", "username")

        if not event.command.startswith(CREATE_COMMAND_PREFIX):
            logger.info(f"Ignoring non-issue-create command: {event.command}")
            return

        issue_url = normalize_issue_url(extract_issue_url(event.output))
        if not issue_url:
            logger.warning(f"Failed to extract issue URL from output: {event.output!r}")
            return
        logger.info(f"Extracted issue URL: {issue_url}")

        created = ctx.advance(
            WorkflowState.CREATED,
            issue_url=issue_url,
            issue_number=extract_issue_number(issue_url),
        )
        text = (
            f"✅ *GitHub Issue Created by @{ctx.get_str('username')}*\n\n"
            f"*Repository:* {ctx.get_str('repo')}\n"
            f"*Title:* {ctx.get_str('title')}\n"
            f"*URL:* {issue_url}"
        )
        await self._transport.push(
            self._config.queues.status,
            StatusMessage(
                destination=self._config.workflow.status_channel_id,
                text=text,
                ttl_seconds=self._config.workflow.status_ttl,
                metadata=to_message_metadata(created),
            ),
        )
        logger.info(f"Status message queued for issue: {issue_url}")

        if created.get_bool("addToProject"):
            await self._add_to_project(issue_url, created)

    async def _add_to_project(self, issue_url: str, ctx: CorrelationContext) -> None:
        github = self._config.github
        command = (
            f"gh project item-add {github.project_id} "
            f"--owner {github.project_org} --url {issue_url}"
        )
        repo = repo_from_issue_url(issue_url) or ctx.get_str("repo")
        await self._submit(KIND_PROJECT, repo, command, ctx)
        logger.info(f"Project assignment command sent to executor for issue: {issue_url}")

    async def sanitize_complete(self, event: WorkerOutputEvent) -> None:
        ctx = _context_of(event)
        expect_state(ctx.state, WorkflowState.SANITIZE_PENDING)
        require(ctx, "issue_url")
        issue_url = ctx.get_str("issue_url")
        location = await self._search.find_by_resource(issue_url)
        if location is None:
            return
        await self._react(SANITIZED_REACTION, location)
        logger.info(f"Marked {issue_url} as sanitized")

    async def title_generated(self, event: WorkerOutputEvent) -> None:
        ctx = _context_of(event)
        expect_state(ctx.state, WorkflowState.REQUESTED)
        require(ctx, "username", "view_id")

        try:
            generated = TitleGenerationOutput.model_validate_json(event.output)
        except ValidationError as e:
            logger.warning(f"Error decoding title generation output: {e}")
            return
        if not generated.title:
            logger.warning("Generated title is empty")
            return

        logger.info(f"Generated title for user {ctx.get_str('username')}: {generated.title}")
        await self._views.update_view(
            ctx.get_str("view_id"), build_issue_modal(generated.title, generated.prompt)
        )
        logger.info(f"Modal updated successfully for user {ctx.get_str('username')}")

    # ------------------------------------------------------------------
    # Follow-ups triggered by reactions
    # ------------------------------------------------------------------

    async def handle_reaction(self, event: ReactionEvent) -> None:
        if event.from_bot:
            logger.info(f"Ignoring reaction from bot user: {event.user}")
            return
        if event.item_type != "message":
            return

        logger.info(
            f"Received {event.reaction} reaction from user {event.user} on message {event.ts}"
        )
        message = await self._search.fetch_message(event.channel, event.ts)
        if message is None:
            logger.info(f"No message found for timestamp: {event.ts}")
            return
        ctx = message.context
        if ctx is None:
            logger.info("Message has no issue metadata, ignoring reaction")
            return
        expect_state(message.state, WorkflowState.CREATED, WorkflowState.IDLE)
        require(ctx, "issue_url")
        issue_url = ctx.get_str("issue_url")

        # assigned issues are sanitized by their assignee
        if ctx.get_bool("assignedToCopilot") or message.has_reaction(ASSIGNED_REACTION):
            logger.info(f"Issue already assigned to Copilot, ignoring reaction: {issue_url}")
            return

        if event.reaction == ASSIGN_REACTION:
            await self._assign(issue_url, ctx)
        elif event.reaction == SANITIZE_REACTION:
            if message.state is WorkflowState.IDLE:
                logger.info(f"Issue already sanitized: {issue_url}")
                return
            await self._sanitize(issue_url, ctx)

    async def _assign(self, issue_url: str, ctx: CorrelationContext) -> None:
        command = 'gh issue edit --add-assignee="@copilot" ' + issue_url
        pending = ctx.advance(WorkflowState.ASSIGN_PENDING)
        await self._submit(KIND_ASSIGN, _repo_for(issue_url, ctx), command, pending)
        logger.info(f"Copilot assignment command sent to executor for issue: {issue_url}")

    async def _sanitize(self, issue_url: str, ctx: CorrelationContext) -> None:
        workflow = self._config.workflow
        command = (
            f"copilot --model {workflow.title_model} --agent issue-sanitiser --prompt "
            + shell_quote(f"Sanitise the GitHub issue {issue_url}")
        )
        pending = ctx.advance(WorkflowState.SANITIZE_PENDING)
        await self._submit(
            KIND_SANITIZE,
            _repo_for(issue_url, ctx),
            command,
            pending,
            working_dir=workflow.agent_working_dir,
            queue=self._config.queues.long_work,
        )
        logger.info(f"Sanitize command sent to executor for issue: {issue_url}")

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def handle_webhook(self, event: WebhookEvent) -> None:
        if not event.issue_url:
            logger.warning(f"Webhook {event.action} for issue #{event.number} has no issue URL")
            return

        if event.action == WEBHOOK_ACTION_CLOSED:
            await self.issue_closed(event)
        elif event.action == WEBHOOK_ACTION_ASSIGNED:
            await self.issue_assigned(event)

    async def issue_closed(self, event: WebhookEvent) -> None:
        logger.info(f"Received issue closed event for issue #{event.number}: {event.title}")
        location = await self._search.find_by_resource(event.issue_url)
        if location is None:
            return
        await self._react(CLOSED_REACTION, location)

        ttl = self._config.workflow.closed_ttl
        await self._transport.publish(
            self._config.channels.cleanup,
            CleanupRequest(
                destination=location.channel, message_ref=location.ts, ttl_seconds=ttl
            ),
        )
        logger.info(f"Set TTL to {ttl}s for message ts={location.ts}")

    async def issue_assigned(self, event: WebhookEvent) -> None:
        automation = self._config.github.automation_login
        if event.assignee.lower() != automation.lower():
            logger.debug(f"Ignoring assignment of #{event.number} to {event.assignee}")
            return
        location = await self._search.find_by_resource(event.issue_url)
        if location is None:
            return
        await self._react(ASSIGNED_REACTION, location)
        logger.info(f"Marked {event.issue_url} as assigned to {automation}")

    # ------------------------------------------------------------------
    # Title generation
    # ------------------------------------------------------------------

    async def generate_title(self, event: MessageActionEvent) -> None:
        logger.info(f"Received {event.callback_id} message action from user {event.username}")
        if not event.text:
            logger.info("Message has no text, ignoring action")
            return

        # the trigger id expires within seconds, so open the modal before the
        # slow title generation starts
        view_id = await self._views.open_view(
            event.trigger_id, build_issue_modal(LOADING_TITLE, event.text)
        )
        logger.info(f"Modal opened successfully with view_id: {view_id}")

        workflow = self._config.workflow
        command = (
            f"copilot --model {workflow.title_model} --agent issue-summariser --prompt "
            + shell_quote(event.text)
        )
        ctx = new_context(WorkflowState.REQUESTED, username=event.username, view_id=view_id)
        github = self._config.github
        await self._submit(
            KIND_TITLE,
            f"{github.org}/{github.agent_repo}",
            command,
            ctx,
            working_dir=workflow.agent_working_dir,
        )
        logger.info(f"Title generation command sent to executor for user: {event.username}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _submit(
        self,
        kind: str,
        repo: str,
        command: str,
        ctx: CorrelationContext,
        working_dir: Optional[str] = None,
        queue: Optional[str] = None,
    ) -> None:
        item = WorkItem(
            resource=repo,
            kind=kind,
            working_dir=working_dir or self._config.workflow.working_dir,
            command_lines=[command],
            correlation_context=ctx.to_dict(),
        )
        await self._transport.push(queue or self._config.queues.work, item)

    async def _react(self, emoji: str, location: MessageLocation) -> None:
        await self._transport.push(
            self._config.queues.reactions,
            ReactionRequest(
                emoji=emoji, destination=location.channel, message_ref=location.ts
            ),
        )
        logger.info(f"Sent {emoji} reaction for message ts={location.ts}")


def _context_of(event: WorkerOutputEvent) -> CorrelationContext:
    if event.context is None:
        raise MissingContextField(["metadata"])
    return event.context


def _repo_for(issue_url: str, ctx: CorrelationContext) -> str:
    return ctx.get_str("repo") or repo_from_issue_url(issue_url) or ""
