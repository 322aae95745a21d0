"""
Rules package.

Resolves resource identifiers and evaluates privilege claims against a
rule store.

Modules of interest:
- identifiers: Canonical spelling, claim splitting and scope narrowing.
- models: Credentials, entity handles and authorization rules.
- engine: The hierarchy walk and conjunctive claim evaluation.
"""
