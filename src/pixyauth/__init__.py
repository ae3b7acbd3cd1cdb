"""pixyauth -- kubectl exec credential plugin for OAuth2 authorization code + PKCE.

``kubectl`` runs ``pixyauth auth`` whenever it needs a bearer token. The
plugin returns a cached token when one is still valid, redeems a refresh
token when it has one, and otherwise sends the user through their browser
to sign in at the issuer. The token is printed as an ``ExecCredential``.

Typical workflow::

    pixyauth -i https://issuer -c CLIENT -a AUDIENCE init --context-name prod
    kubectl --context prod get pods    # opens the browser on first use

Modules:
    app: Typer application and CLI entry point.
    auth: The PKCE flow and the caching token provider.
    cache: Keyring and YAML file token caches.
    config: XDG-aware paths and settings resolution.
    discovery: OpenID Connect endpoint discovery.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    kubeconfig: Registering the plugin in a kubeconfig.
    models: Pydantic models shared across the package.
    output: stderr messaging and logging setup.
"""

__version__ = "0.1.0"
