"""Contratos del Core (typing.Protocol).

- `TokenStore`: dónde vive la sesión; el executor solo depende de este contrato.
"""
