"""regguard - Egress guard and LLM router for a regulatory research copilot.

Every outbound call to a third-party LLM provider and every result coming
back from sandboxed code execution passes through a policy-driven pipeline
that redacts sensitive data and decides which provider/model may be used.

Key modules:

- :mod:`regguard.egress` - Pattern sanitizer, egress client, mode resolution
- :mod:`regguard.llm` - Provider clients, policy stores, tenant-aware router
- :mod:`regguard.tools` - Sandboxed code execution tools and registry
- :mod:`regguard.sandbox` - E2B sandbox adapter and active-sandbox manager
- :mod:`regguard.prompts` - Composable system prompt aspects
- :mod:`regguard.aspects` - Generic async middleware composition
"""

__version__ = "0.1.0"
