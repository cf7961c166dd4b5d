"""Error taxonomy shared by the sync engine, the stores and the remote client."""

from __future__ import annotations


class AgrippaError(Exception):
    """Base class for every error surfaced to the user."""


class ConfigurationError(AgrippaError):
    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Error while reading configuration: the following parameters are missing: "
            f"{', '.join(self.missing_fields)}. Did you initialize the workspace?"
        )


class ConnectError(AgrippaError):
    """A remote call failed.

    `status` is the HTTP status, or 0 when no usable response arrived
    (transport failure or an undecodable body).
    """

    def __init__(self, url: str, status: int, body: str = "") -> None:
        self.url = url
        self.status = status
        self.body = body
        super().__init__(f"Failed to load resource at {url}: status code {status} : {body}")


class LocalResourceNotFound(AgrippaError):
    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f'Could not find local resource "{resource}".')


class RemoteResourceNotFound(AgrippaError):
    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f'Could not find remote resource "{resource}".')


class NothingToSync(AgrippaError):
    def __init__(self) -> None:
        super().__init__("Nothing to sync")


class UpsyncFailure(AgrippaError):
    def __init__(self, resource: str, reason: str = "unknown") -> None:
        self.resource = resource
        self.reason = reason
        super().__init__(f"Failed to upsync resource {resource}: {reason}")
