"""Infrastructure for LSP channel purchases: the LND node client and operator prompts."""
