"""
Module for dealing with resource limits of judged processes.
"""

import resource


def prepare_child() -> None:
    """Set up resource limits in a freshly forked child before it execs
    the judged program.

    Solutions in competitive programming often recurse deeply, so the stack
    rlimit is raised as far as the hard limit allows.  Signal dispositions
    the Python interpreter changes (notably SIGPIPE, which must kill a
    solution writing to a tester that has exited) are restored by
    subprocess itself.
    """
    try_limit(resource.RLIMIT_STACK, resource.RLIM_INFINITY, resource.RLIM_INFINITY)


def check_limit_capabilities(logger) -> None:
    """Check if localjudge is run with appropriate capabilities to set
    rlimits, and if not, issue warnings.

    Params:
        logger: object to issue warnings to (by calling 'warning' method)
    """
    (_, stack_hard) = resource.getrlimit(resource.RLIMIT_STACK)
    if stack_hard != resource.RLIM_INFINITY:
        logger.warning("Hard stack rlimit of %d so I can't set it to unlimited. I will keep it at %d. If you experience unexpected issues (in particular run-time errors) this may be the cause."
                       % (stack_hard, stack_hard))


def try_limit(limit, soft, hard) -> None:
    """Attempt to set an rlimit, but caps it at the current hard limit for
    the resource (instead of failing like a call to resource.setrlimit
    would).

    Params:
        limit: resource to limit (e.g. resource.RLIMIT_STACK)
        soft: soft limit
        hard: hard limit
    """
    (_, cur_hard) = resource.getrlimit(limit)
    if not __limit_less(soft, cur_hard):
        soft = cur_hard
    if not __limit_less(hard, cur_hard):
        hard = cur_hard
    resource.setrlimit(limit, (soft, hard))


def __limit_less(lim1, lim2) -> bool:
    """Helper function for comparing two rlimit values, handling "unlimited" correctly.

    Params:
        lim1 (integer): first rlimit
        lim2 (integer): second rlimit

    Returns:
        true if lim1 <= lim2
    """
    if lim2 == resource.RLIM_INFINITY:
        return True
    if lim1 == resource.RLIM_INFINITY:
        return False
    return lim1 <= lim2
