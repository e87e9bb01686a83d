"""Atelier Credential Vault - credential-injecting reverse proxy.

Modules
-------
providers
    Provider descriptor table (prefix, upstream origin, credential header).
credentials
    Loading, bootstrapping and migrating the vault's dotenv credential file.
app
    FastAPI proxy application and the ``main()`` CLI entry point.
"""
