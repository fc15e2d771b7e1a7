"""Shared helpers for the tests."""


class FakeCall:
    """Replacement for ``subprocess.call`` recording the commands

    Each call returns the next of ``returncodes`` (``0`` once exhausted); exception instances are
    raised instead.
    """

    def __init__(self, *returncodes):
        self.returncodes = list(returncodes)
        self.calls = []

    def __call__(self, argv):
        self.calls.append(argv)
        result = self.returncodes.pop(0) if self.returncodes else 0
        if isinstance(result, Exception):
            raise result
        return result
