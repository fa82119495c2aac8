"""ociprobe - ephemeral OCI compute capability probe

Philosophy:
- Validate, then destroy: nothing provisioned outlives the call
- Brick architecture (self-contained modules behind capability interfaces)
- Security by design (root credentials never logged)
- Fail fast, clean up always

ociprobe answers one question per tenant: can this credential, in this region,
stand up a working instance right now? It builds a network, security rules and
two instances (image-based, then boot-volume-based), checks that each reaches
a running state, and tears everything down in reverse order.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
