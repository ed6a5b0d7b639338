"""Domain layer for LSP channel purchases.

Contains wire models, value objects and enums.
"""
