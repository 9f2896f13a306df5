import json

from ..errors import PromptLibError
from ..library import PromptLibrary
from ..views import ViewMode, view


def _summary(prompt) -> dict:
    estimate = prompt.metadata.token_estimate if prompt.metadata else None
    return {
        "id": prompt.id,
        "title": prompt.title,
        "model": prompt.model,
        "rating": prompt.rating,
        "is_favorite": prompt.is_favorite,
        "notes": len(prompt.notes),
        "tokens": estimate.to_dict() if estimate else None,
    }


def _view_mode(value: str) -> ViewMode:
    try:
        return ViewMode(value)
    except ValueError as e:
        raise PromptLibError.validation(
            f"Unknown filter {value!r}. Use one of: all, favorites, toprated"
        ) from e


def register_tools(mcp, library: PromptLibrary) -> None:
    @mcp.tool()
    def prompt_save(
        title: str,
        model: str,
        content: str,
        is_code: bool = False,
    ) -> str:
        """Save a new prompt with the model it was written for."""
        prompt = library.create_prompt(title, model, content, is_code)
        if prompt is None:
            return json.dumps(
                {"status": "skipped", "reason": "title, model and content are required"}
            )
        result = {"status": "saved", **_summary(prompt)}
        return json.dumps(result)

    @mcp.tool()
    def prompt_get(prompt_id: str) -> str:
        """Get a prompt, its notes and metadata by id."""
        prompt = library.get_prompt(prompt_id)
        if prompt is None:
            return json.dumps({"status": "not_found", "id": prompt_id})
        return json.dumps(prompt.to_dict())

    @mcp.tool()
    def prompt_list(filter: str = "all") -> str:
        """List prompts newest first. filter: all, favorites or toprated."""
        prompts = view(library.list_prompts(), _view_mode(filter))
        return json.dumps([_summary(p) for p in prompts])

    @mcp.tool()
    def prompt_delete(prompt_id: str) -> str:
        """Delete a prompt and its notes."""
        prompt = library.delete_prompt(prompt_id)
        status = "deleted" if prompt else "not_found"
        return json.dumps({"status": status, "id": prompt_id})

    @mcp.tool()
    def prompt_rate(prompt_id: str, rating: int) -> str:
        """Rate a prompt 1-5. Giving the current rating again clears it."""
        prompt = library.set_rating(prompt_id, rating)
        if prompt is None:
            return json.dumps({"status": "not_found", "id": prompt_id})
        return json.dumps({"status": "rated", "id": prompt.id, "rating": prompt.rating})

    @mcp.tool()
    def prompt_favorite(prompt_id: str) -> str:
        """Toggle a prompt's favorite flag."""
        prompt = library.toggle_favorite(prompt_id)
        if prompt is None:
            return json.dumps({"status": "not_found", "id": prompt_id})
        return json.dumps({"status": "toggled", "id": prompt.id, "is_favorite": prompt.is_favorite})

    @mcp.tool()
    def note_add(prompt_id: str, content: str) -> str:
        """Attach a note (max 500 characters) to a prompt."""
        note = library.add_note(prompt_id, content)
        if note is None:
            return json.dumps({"status": "skipped", "id": prompt_id})
        return json.dumps({"status": "added", "prompt_id": prompt_id, "note": note.to_dict()})

    @mcp.tool()
    def note_edit(prompt_id: str, note_id: str, content: str) -> str:
        """Replace the text of an existing note."""
        note = library.edit_note(prompt_id, note_id, content)
        if note is None:
            return json.dumps({"status": "skipped", "id": prompt_id, "note_id": note_id})
        return json.dumps({"status": "edited", "prompt_id": prompt_id, "note": note.to_dict()})

    @mcp.tool()
    def note_delete(prompt_id: str, note_id: str) -> str:
        """Delete a note from a prompt."""
        prompt = library.delete_note(prompt_id, note_id)
        status = "deleted" if prompt else "not_found"
        return json.dumps({"status": status, "prompt_id": prompt_id, "note_id": note_id})
