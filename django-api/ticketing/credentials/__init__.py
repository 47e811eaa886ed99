from ticketing.credentials.codec import CredentialCodec, CredentialPayload
from ticketing.credentials.renderer import QrRenderer

__all__ = ["CredentialCodec", "CredentialPayload", "QrRenderer"]
