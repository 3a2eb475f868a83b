"""Contains exceptions raised when reconciling application configuration."""


class GitHubAuthenticationConfigurationUndefinedError(Exception):
    """Raised when the GitHub authentication configuration is undefined or ambiguous."""

    pass


class RequiredConfigurationElementError(Exception):
    """Raised when a required configuration element is missing."""

    def __init__(self, name: str, cli_name: str, env_name: str) -> None:
        """Initializes the exception with the name of the missing element."""
        super().__init__(f"Missing required configuration element: {name} (command line option {cli_name}, environment variable {env_name})")
        self.name = name
        self.cli_name = cli_name
        self.env_name = env_name


class InvalidConfigurationValueError(Exception):
    """Raised when a configuration element holds a value outside of its allowed range."""

    def __init__(self, name: str, value: object, constraint: str) -> None:
        """Initializes the exception with the offending element and the constraint it violates."""
        super().__init__(f"Invalid value {value!r} for {name}: {constraint}")
        self.name = name
        self.value = value
        self.constraint = constraint


class GitHubClientConfigurationError(RuntimeError):
    """Raised when a GitHub client cannot be built from the configured credentials."""

    pass
