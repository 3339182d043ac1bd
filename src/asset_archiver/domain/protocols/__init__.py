from asset_archiver.domain.protocols.mime_resolver_port import MimeResolverPort

__all__ = [
    "MimeResolverPort",
]
