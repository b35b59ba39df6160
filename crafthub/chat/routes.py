# crafthub/chat/routes.py
import uuid

from flask import current_app

from . import bp
from ..schemas import ChatClearIn, ChatMessageIn
from ..services.chat_store import get_chat_store, search_templates
from ..utils.api import ok, parse_body


@bp.post("")
def chat():
    """
    Body: { "message": str, "session_id": str | null }
    A missing session id starts a new conversation.
    """
    body = parse_body(ChatMessageIn)
    store = get_chat_store()
    session_id = body.session_id or uuid.uuid4().hex

    history = store.append(session_id, "user", body.message)
    templates = search_templates(body.message)
    responder = current_app.extensions["chat_responder"]
    reply = responder(body.message, history, templates)
    store.append(session_id, "assistant", reply)

    return ok("chat", {
        "session_id": session_id,
        "reply": reply,
        "templates": [t.as_api() for t in templates],
    })


@bp.post("/clear")
def clear():
    body = parse_body(ChatClearIn)
    cleared = get_chat_store().clear(body.session_id)
    return ok("conversation cleared", {"cleared": cleared})
