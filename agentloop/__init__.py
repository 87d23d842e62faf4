"""
agentloop - Tool-Calling Agent Runtime
======================================

A conversational agent that streams model replies, lets the model call
tools from any number of tool servers, and feeds the results back until
it can answer.

This package provides:
- Agent system with a bounded tool-calling loop over streamed replies
- Tool registry with provider__tool namespacing and MCP server providers
- Skills: markdown guides the model can read on demand
- RAG knowledge base for semantic search over local documents
"""

__version__ = "1.0.0"
