"""Command-line interface adapters.

Provides one-shot commands against the configured tool set:
- tools: Print the tool catalogue
- call: Execute one tool call and print its reply
"""
