"""Collaborators the fetch-and-verify pipeline depends on.

Modules
-------
codec
    Builds and opens signed ``.pyz`` archives; ``open()`` performs the
    digest or Ed25519 check and fails on an unusable public key.
crypto_bridge
    Ed25519 key generation, signing and verification through PyNaCl.
transport
    Copies bytes from local paths, ``file://`` and ``http(s)://`` URIs.
"""
