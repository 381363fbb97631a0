"""Discriminators shared by the classifier and the workflow handlers."""

ISSUE_COMMAND = "/issue"
SETUP_AI_TEXT = ":sparkles:"

ISSUE_MODAL_CALLBACK_ID = "create_github_issue_modal"
MESSAGE_ACTION_CALLBACK_ID = "create_github_issue"

# Work-item kinds; the executor echoes them back as the output ``type``.
KIND_CREATE = "issueflow-create"
KIND_PROJECT = "issueflow-project"
KIND_ASSIGN = "issueflow-assign"
KIND_SANITIZE = "issueflow-sanitize"
KIND_TITLE = "issueflow-title"
WORK_ITEM_KINDS = frozenset(
    {KIND_CREATE, KIND_PROJECT, KIND_ASSIGN, KIND_SANITIZE, KIND_TITLE}
)

DEFAULT_BRANCH = "refs/heads/main"
CREATE_COMMAND_PREFIX = "gh issue create"

ISSUE_CREATED_EVENT_TYPE = "issue_created"

ASSIGN_REACTION = "sparkles"
SANITIZE_REACTION = "soap"
TRIGGER_REACTIONS = frozenset({ASSIGN_REACTION, SANITIZE_REACTION})

CLOSED_REACTION = "cat2"
ASSIGNED_REACTION = "robot_face"
SANITIZED_REACTION = "bubbles"

WEBHOOK_ACTION_CLOSED = "closed"
WEBHOOK_ACTION_ASSIGNED = "assigned"
WEBHOOK_ACTIONS = frozenset({WEBHOOK_ACTION_CLOSED, WEBHOOK_ACTION_ASSIGNED})

LOADING_TITLE = "⏳ Generating title..."
SETUP_AI_TITLE = "✨ Set up Copilot instructions"
SETUP_AI_DESCRIPTION = (
    "Configure instructions for this repository as documented in "
    "[Best practices for Copilot coding agent in your repository]"
    "(https://gh.io/copilot-coding-agent-tips).\n\n<Onboard this repo>"
)
