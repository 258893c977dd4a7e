class ConfigurationError(Exception):
    """
    Raised when client settings or stored configuration are missing or invalid.
    """

    pass
