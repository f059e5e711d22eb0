class SiteChatError(RuntimeError):
    pass


class InvalidRequest(SiteChatError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class UpstreamServiceError(SiteChatError):
    """An index, embedding or generation call failed."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class CrawlPageError(SiteChatError):
    """A single page could not be rendered. Recovered by the crawler."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ConfigurationError(SiteChatError):
    pass


class InvalidConfiguration(ConfigurationError):
    pass
