# llm provider implementations
