from unittest.mock import AsyncMock, Mock


class OllamaClientBuilder:
    """Factory for creating configurable Ollama mocks.

    Responses are picked by the num_predict budget of each generate call
    (96 short, 128 continuation, 4096 full/single by default), then from a
    queue, then the default text.
    """

    def __init__(self):
        self.by_budget = {}
        self.errors_by_budget = {}
        self.queue = []
        self.default = "default response"
        self.calls = []
        self.reachable = True

    def respond(self, num_predict, content):
        """Configure the response for generate calls with the given token budget."""
        self.by_budget[num_predict] = content
        return self

    def fail(self, num_predict, exc):
        """Raise exc for generate calls with the given token budget."""
        self.errors_by_budget[num_predict] = exc
        return self

    def enqueue(self, *contents):
        """Responses returned in order for budgets without a configured response."""
        self.queue.extend(contents)
        return self

    def unreachable(self):
        self.reachable = False
        return self

    def generation_calls(self):
        """Generate calls excluding the 1-token pre-warm."""
        return [call for call in self.calls if call["options"].get("num_predict") != 1]

    def build(self):
        """Build the AsyncMock."""

        async def _mock_generate(model, prompt, system=None, options=None, **kwargs):
            options = options or {}
            budget = options.get("num_predict")
            self.calls.append({"model": model, "prompt": prompt, "system": system, "options": options})

            if not self.reachable:
                raise ConnectionError("Failed to connect to Ollama")
            if budget in self.errors_by_budget:
                raise self.errors_by_budget[budget]
            if budget in self.by_budget:
                content = self.by_budget[budget]
            elif self.queue:
                content = self.queue.pop(0)
            else:
                content = self.default
            return {"response": content}

        client = AsyncMock()
        client.generate = AsyncMock(side_effect=_mock_generate)
        if self.reachable:
            client.show = AsyncMock(return_value={"modelfile": "FROM llama3.2:3b"})
        else:
            client.show = AsyncMock(side_effect=ConnectionError("Failed to connect to Ollama"))
        return client


def http_response(status_code=200, text="", json_data=None):
    """Mock httpx response."""
    response = Mock(status_code=status_code, text=text)
    response.json = Mock(return_value=json_data or {})
    return response
