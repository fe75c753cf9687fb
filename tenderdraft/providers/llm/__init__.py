"""LLM provider adapters.

Two concrete implementations of ILLMProvider (tenderdraft/interfaces/llm_provider.py):
    - AnthropicLLMProvider -- Claude via the Messages API
    - OpenAILLMProvider    -- gpt-4o-mini, or any OpenAI-compatible endpoint

At startup, main.py picks the provider matching the configured API key and
hands it to the AnswerDrafter.
"""
