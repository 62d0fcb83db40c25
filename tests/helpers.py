import time

CHAT_RESPONSE_KEYS = {
    "answer", "pendingFull", "fullId", "language", "usedWeb",
    "sources", "model", "searchError", "searchProvider", "stats",
}


def assert_chat_payload(payload):
    """Assert the chat response carries every documented field."""
    missing = CHAT_RESPONSE_KEYS - set(payload)
    assert not missing, f"Chat response is missing fields: {missing}"
    assert payload["answer"], "Chat response answer is empty"


def poll_full_response(client, full_id, attempts=100, delay=0.02):
    """Poll /api/chat/full/{id} until ready or attempts run out; return the last payload."""
    payload = None
    for _ in range(attempts):
        response = client.get(f"/api/chat/full/{full_id}")
        assert response.status_code == 200, response.text
        payload = response.json()
        if payload["ready"]:
            return payload
        time.sleep(delay)
    return payload
