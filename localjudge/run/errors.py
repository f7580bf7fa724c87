class ProgramError(Exception):
    """Exception class for programs that cannot be set up or started."""
    pass
