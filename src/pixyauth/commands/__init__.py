"""Built-in CLI sub-commands for pixyauth.

* :mod:`~pixyauth.commands.auth` -- print an ExecCredential for ``kubectl``.
* :mod:`~pixyauth.commands.init` -- register pixyauth in a kube config.

Both modules export a plain callback function registered directly on the
root app.
"""
