# tuttu_meter/demo/sample_call_log.py

import json
import sys

# Two user turns: a tool-call chain on Anthropic, then a single Google call.
SAMPLE_CALLS = [
    {
        "prompt": [
            {"role": "system", "content": "You are a helpful coding agent."},
            {"role": "user", "content": "Build a todo app"},
        ],
        "completion": [{"role": "assistant", "content": "Let me look at the project first."}],
        "usage": {"promptTokens": 1200, "completionTokens": 300, "totalTokens": 1500},
        "providerMetadata": {"anthropic": {"cacheReadInputTokens": 1000, "cacheCreationInputTokens": 0}},
        "finishReason": "tool-calls",
        "modelId": "claude-sonnet-4-0",
        "provider": "Anthropic",
    },
    {
        "prompt": [
            {"role": "system", "content": "You are a helpful coding agent."},
            {"role": "user", "content": "Build a todo app"},
            {"role": "assistant", "content": "Let me look at the project first."},
            {"role": "tool", "content": [{"type": "tool-result", "toolName": "view", "result": "..."}]},
        ],
        "completion": [{"role": "assistant", "content": "Your todo app is ready."}],
        "usage": {"promptTokens": 1800, "completionTokens": 400, "totalTokens": 2200},
        "providerMetadata": {"anthropic": {"cacheReadInputTokens": 1500, "cacheCreationInputTokens": 0}},
        "finishReason": "stop",
        "modelId": "claude-sonnet-4-0",
        "provider": "Anthropic",
    },
    {
        "prompt": [
            {"role": "user", "content": [{"type": "text", "text": "Add a dark mode toggle"}]},
        ],
        "completion": [{"role": "assistant", "content": "Added the toggle."}],
        "usage": {"promptTokens": 200, "completionTokens": 100, "totalTokens": 300},
        "providerMetadata": {"google": {"cachedContentTokenCount": 50, "thoughtsTokenCount": 20}},
        "finishReason": "stop",
        "modelId": "gemini-2.5-pro",
    },
]


def write_sample_call_log(path: str) -> None:
    """Write the sample calls as a JSON call log."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(SAMPLE_CALLS, f, indent=2)


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else "sample_call_log.json"
    write_sample_call_log(target)
    print(f"Sample call log written to {target}")
