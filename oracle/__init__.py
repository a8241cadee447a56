"""
NovelWeaver - Content Oracle
Typed access to the search-backed text oracle.

Architecture:
    prompts.py  - Request templates for the resolve-novel and resolve-chapter intents
    parsing.py  - Pulls the single JSON object out of a free-text answer
    client.py   - ContentOracleClient: validation, rate-limit retry, typed results
"""

from oracle.client import ContentOracleClient, get_oracle_client, init_oracle_client

__all__ = [
    "ContentOracleClient",
    "get_oracle_client",
    "init_oracle_client",
]
