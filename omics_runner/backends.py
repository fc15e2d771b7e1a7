"""Execution backends: running commands in a container runtime or directly on the host."""

import logging
import os
import posixpath
import re
import shutil

import attr

from .exceptions import NoBackendFound, UnknownBackend

#: Container path of the input directory mount.
CONTAINER_INPUT_DIR = "/data"
#: Container path of the output directory mount.
CONTAINER_OUTPUT_DIR = "/out"

#: Matches image references with an explicit transport, e.g., ``oras://...``.
RE_IMAGE_TRANSPORT = re.compile(r"^[a-z][a-z0-9+.-]*://")


@attr.s(frozen=True)
class Mount:
    """A host directory made visible to the executed command"""

    #: Absolute path on the host
    host_path = attr.ib()
    #: Path inside the container
    container_path = attr.ib()
    #: Whether to mount read-only
    read_only = attr.ib(default=False)


class ExecutionBackend:
    """Base class for the ways of running an external command."""

    #: Name used on the command line and in the configuration
    name = None
    #: Executable to look for on ``PATH``
    executable = None
    #: Whether paths are remapped through mounts
    containerized = True

    def is_available(self, program, which=shutil.which):
        """Return whether the backend can be used for running ``program``."""
        return which(self.executable) is not None

    def accepts_image(self, image):
        """Return whether ``image`` can be run by this backend."""
        return True

    def command_prefix(self, image, mounts):
        """Return the argument vector prefix for running a command in ``image``."""
        raise NotImplementedError("Override me!")

    def resolve(self, mount, *parts):
        """Return path of ``parts`` below ``mount`` as seen by the executed command."""
        if self.containerized:
            return posixpath.join(mount.container_path, *parts)
        else:
            return os.path.join(mount.host_path, *parts)

    def __repr__(self):
        return "%s()" % self.__class__.__name__


class DockerBackend(ExecutionBackend):
    """Run through ``docker run``."""

    name = "docker"
    executable = "docker"

    def accepts_image(self, image):
        # Docker only pulls registry tags, neither transports nor SIF files.
        return not RE_IMAGE_TRANSPORT.match(image) and not image.endswith(".sif")

    def command_prefix(self, image, mounts):
        argv = [self.executable, "run", "--rm"]
        for mount in mounts:
            volume = "%s:%s" % (mount.host_path, mount.container_path)
            if mount.read_only:
                volume += ":ro"
            argv += ["-v", volume]
        argv.append(image)
        return argv


class SingularityBackend(ExecutionBackend):
    """Run through ``singularity exec``."""

    name = "singularity"
    executable = "singularity"

    def command_prefix(self, image, mounts):
        argv = [self.executable, "exec"]
        for mount in mounts:
            bind = "%s:%s" % (mount.host_path, mount.container_path)
            if mount.read_only:
                bind += ":ro"
            argv += ["--bind", bind]
        argv.append(image)
        return argv


class ApptainerBackend(SingularityBackend):
    """Run through ``apptainer exec``, the successor of Singularity."""

    name = "apptainer"
    executable = "apptainer"


class DirectBackend(ExecutionBackend):
    """Run the wrapped program installed on the host, ignoring the image."""

    name = "direct"
    containerized = False

    def is_available(self, program, which=shutil.which):
        return which(program) is not None

    def command_prefix(self, image, mounts):
        return []


#: Known backends by name.
BACKENDS = {
    cls.name: cls
    for cls in (DockerBackend, SingularityBackend, ApptainerBackend, DirectBackend)
}

#: Order in which backends are probed if none is requested.
DEFAULT_PREFERENCE = ("apptainer", "singularity", "docker")


def create_backend(name):
    """Return backend instance for ``name``."""
    try:
        return BACKENDS[name]()
    except KeyError:
        raise UnknownBackend(
            "Unknown runtime '%s'. Use one of: %s" % (name, ", ".join(sorted(BACKENDS)))
        ) from None


def choose_backend(preference, available):
    """Return first name in ``preference`` with a true value in ``available`` or ``None``.

    ``available`` maps backend names to probe results.
    """
    for name in preference:
        if name not in BACKENDS:
            raise UnknownBackend("Unknown runtime '%s' in runtime preference" % name)
    for name in preference:
        if available.get(name):
            return name
    return None


class BackendSelector:
    """Selects the backend once and then keeps it for the rest of the run."""

    #: No backend selected yet
    UNSELECTED = "unselected"
    #: Backend selected, will not change any more
    LOCKED = "locked"

    def __init__(self, preference=DEFAULT_PREFERENCE, which=shutil.which):
        unknown = [name for name in preference if name not in BACKENDS]
        if unknown:
            raise UnknownBackend(
                "Unknown runtime(s) %s in runtime preference. Use one of: %s"
                % (", ".join(unknown), ", ".join(sorted(BACKENDS)))
            )
        self.preference = tuple(preference)
        self.which = which
        self.state = self.UNSELECTED
        self.backend = None

    def select(self, program, requested=None):
        """Return the backend for running ``program``, selecting it on the first call."""
        if self.state == self.LOCKED:
            return self.backend
        if requested:
            backend = create_backend(requested)
            logging.debug("Using requested runtime %s", backend.name)
        else:
            available = {}
            for name in self.preference:
                if name not in available:
                    available[name] = BACKENDS[name]().is_available(program, which=self.which)
            logging.debug("Runtime availability: %s", available)
            name = choose_backend(self.preference, available)
            if name is None:
                raise NoBackendFound(
                    "None of %s were found in PATH. Install or load one of them or request "
                    "a runtime explicitly." % ", ".join(self.preference)
                )
            backend = create_backend(name)
        self.backend = backend
        self.state = self.LOCKED
        return backend
