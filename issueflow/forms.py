"""The issue modal: building it and decoding what users submit from it."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .constants import ISSUE_MODAL_CALLBACK_ID

REPO_BLOCK = "repo_selection_block"
REPO_ACTION = "repo_select"
TITLE_BLOCK = "title_block"
TITLE_ACTION = "issue_title"
DESCRIPTION_BLOCK = "description_block"
DESCRIPTION_ACTION = "issue_description"
ASSIGNMENT_BLOCK = "assignment_block"
ASSIGN_ACTION = "assign_copilot"
PROJECT_ACTION = "add_to_project"


class _Option(BaseModel):
    value: str = ""


class _SelectState(BaseModel):
    selected_option: Optional[_Option] = None


class _TextState(BaseModel):
    value: Optional[str] = None


class _CheckboxState(BaseModel):
    selected_options: List[_Option] = Field(default_factory=list)


class IssueForm(BaseModel):
    """Fields the create step needs from a submitted issue modal.

    Absent blocks decode to empty defaults; only a block of the wrong shape
    fails validation.
    """

    repo: str = ""
    title: str = ""
    description: str = ""
    assign_to_copilot: bool = False
    add_to_project: bool = False

    @classmethod
    def from_state(cls, values: Dict[str, Dict[str, Any]]) -> "IssueForm":
        """Decode ``view.state.values`` of an issue modal submission.

        Raises:
            pydantic.ValidationError: If a known block has an unexpected shape.
        """

        def action(block: str, action_id: str) -> Dict[str, Any]:
            return (values.get(block) or {}).get(action_id) or {}

        repo = _SelectState.model_validate(action(REPO_BLOCK, REPO_ACTION))
        title = _TextState.model_validate(action(TITLE_BLOCK, TITLE_ACTION))
        description = _TextState.model_validate(
            action(DESCRIPTION_BLOCK, DESCRIPTION_ACTION)
        )
        assign = _CheckboxState.model_validate(action(ASSIGNMENT_BLOCK, ASSIGN_ACTION))
        project = _CheckboxState.model_validate(
            action(ASSIGNMENT_BLOCK, PROJECT_ACTION)
        )
        return cls(
            repo=repo.selected_option.value if repo.selected_option else "",
            title=(title.value or "").strip(),
            description=description.value or "",
            assign_to_copilot=bool(assign.selected_options),
            add_to_project=bool(project.selected_options),
        )


def _plain(text: str) -> Dict[str, Any]:
    return {"type": "plain_text", "text": text}


def _checkbox(action_id: str, label: str, selected: bool) -> Dict[str, Any]:
    option = {"text": _plain(label), "value": "true"}
    element: Dict[str, Any] = {
        "type": "checkboxes",
        "action_id": action_id,
        "options": [option],
    }
    if selected:
        element["initial_options"] = [option]
    return element


def build_issue_modal(
    initial_title: str = "",
    initial_description: str = "",
    preselect_assign: bool = False,
) -> Dict[str, Any]:
    """Slack ``views.open`` payload for the new-issue modal."""
    title_input: Dict[str, Any] = {
        "type": "plain_text_input",
        "action_id": TITLE_ACTION,
        "placeholder": _plain("Brief summary of the issue"),
    }
    if initial_title:
        title_input["initial_value"] = initial_title

    description_input: Dict[str, Any] = {
        "type": "plain_text_input",
        "action_id": DESCRIPTION_ACTION,
        "multiline": True,
        "placeholder": _plain("Provide more details, reproduction steps, etc."),
    }
    if initial_description:
        description_input["initial_value"] = initial_description

    return {
        "type": "modal",
        "callback_id": ISSUE_MODAL_CALLBACK_ID,
        "title": _plain("New GitHub Issue"),
        "submit": _plain("Create Issue"),
        "close": _plain("Cancel"),
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "Fill out the details below to open a new issue in your repository.",
                },
            },
            {
                "type": "input",
                "block_id": REPO_BLOCK,
                "label": _plain("Select Repository"),
                "element": {
                    "type": "external_select",
                    "action_id": REPO_ACTION,
                    "placeholder": _plain("Search for a repo..."),
                },
            },
            {
                "type": "input",
                "block_id": TITLE_BLOCK,
                "label": _plain("Issue Title"),
                "element": title_input,
            },
            {
                "type": "input",
                "block_id": DESCRIPTION_BLOCK,
                "label": _plain("Description"),
                "element": description_input,
                "optional": True,
            },
            {
                "type": "actions",
                "block_id": ASSIGNMENT_BLOCK,
                "elements": [
                    _checkbox(ASSIGN_ACTION, "Assign to Copilot", preselect_assign),
                    _checkbox(PROJECT_ACTION, "Add to project", True),
                ],
            },
        ],
    }
