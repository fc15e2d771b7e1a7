"""Configuration of the runner, loaded from TOML and merged with the command line."""

import logging
import os

import attr
import toml

from .backends import DEFAULT_PREFERENCE
from .exceptions import InvalidConfiguration
from .pairing import DEFAULT_PRIMARY_MARKER, DEFAULT_PRIMARY_PATTERN, DEFAULT_SECONDARY_MARKER

#: Paths searched for the configuration file, the first existing one is used.
CONFIG_PATHS = ("~/.omicsrunnerrc.toml", "~/omicsrunnerrc.toml")

#: Default Trim Galore image (Seqera Wave ORAS registry).
DEFAULT_TRIMGALORE_IMAGE = (
    "oras://community.wave.seqera.io/library/trim-galore:0.6.10--bc38c9238980c80e"
)
#: Default STAR image (Seqera Wave ORAS registry).
DEFAULT_STAR_IMAGE = "oras://community.wave.seqera.io/library/star:2.7.11b--84fcc19fdfab53a4"

#: Configuration section for each subcommand.
SECTIONS = {"trim-galore": "trim_galore", "star-index": "star"}


@attr.s(frozen=True)
class RunnerConfig:
    """Configuration of one run"""

    #: The subcommand, ``trim-galore`` or ``star-index``
    command = attr.ib()
    #: Container image reference
    image = attr.ib()
    #: Explicitly requested runtime, ``None`` for probing
    runtime = attr.ib()
    #: Runtimes to probe, in order of preference
    runtime_preference = attr.ib(converter=tuple)
    #: Extra flags passed to the wrapped tool
    extra_args = attr.ib(converter=tuple)

    #: Pattern for first-mate files
    primary_pattern = attr.ib()
    #: Marker of first-mate files
    primary_marker = attr.ib()
    #: Marker of second-mate files, ``None`` for single-end mode
    secondary_marker = attr.ib()
    #: Whether to scan subdirectories
    recursive = attr.ib()
    #: Whether to mirror input subdirectories in the output directory
    preserve_subdirs = attr.ib()

    #: Number of STAR threads
    threads = attr.ib()
    #: STAR ``--sjdbOverhang``
    sjdb_overhang = attr.ib()

    #: Return non-zero if any job failed
    strict = attr.ib()
    #: Increase verbosity
    verbose = attr.ib()
    #: Decrease verbosity
    quiet = attr.ib()

    @classmethod
    def build(cls, config, command):
        """Construct a new ``RunnerConfig`` object from configuration ``dict``."""
        section = config.get(SECTIONS[command], {})
        if section.get("single_end"):
            secondary_marker = None
        else:
            secondary_marker = section.get("secondary_marker", DEFAULT_SECONDARY_MARKER)
        try:
            threads = int(section.get("threads", 4))
            sjdb_overhang = int(section.get("sjdb_overhang", 100))
        except (TypeError, ValueError) as e:
            raise InvalidConfiguration("Invalid numeric parameter: %s" % e) from e
        if threads < 1 or sjdb_overhang < 1:
            raise InvalidConfiguration("Threads and sjdbOverhang must be positive")
        extra_args = section.get("extra_args", ())
        preference = config.get("runtime", {}).get("preference", DEFAULT_PREFERENCE)
        for key, value in (("extra_args", extra_args), ("preference", preference)):
            if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
                raise InvalidConfiguration("%s must be a list of strings, got %r" % (key, value))
        default_image = DEFAULT_STAR_IMAGE if command == "star-index" else DEFAULT_TRIMGALORE_IMAGE
        return cls(
            command=command,
            image=section.get("image") or default_image,
            runtime=config.get("runtime", {}).get("requested"),
            runtime_preference=preference,
            extra_args=extra_args,
            primary_pattern=section.get("primary_pattern", DEFAULT_PRIMARY_PATTERN),
            primary_marker=section.get("primary_marker", DEFAULT_PRIMARY_MARKER),
            secondary_marker=secondary_marker,
            recursive=section.get("recursive", True),
            preserve_subdirs=section.get("preserve_subdirs", False),
            threads=threads,
            sjdb_overhang=sjdb_overhang,
            strict=config.get("strict", False),
            verbose=config.get("verbose", False),
            quiet=config.get("quiet", False),
        )


def load_config(paths=CONFIG_PATHS):
    """Load configuration file"""
    config = {}
    for path in paths:
        if os.path.exists(os.path.expanduser(path)):
            logging.info("Loading configuration file %s, not looking further afterwards", path)
            with open(os.path.expanduser(path), "rt") as tomlf:
                config = toml.load(tomlf)
            break
        else:
            logging.debug("Configuration %s does not exist", path)
    else:
        logging.info("No configuration file found; not loading any")
    return config


def merge_config_args(config, args):
    """Merge args into configuration."""
    section = config.setdefault(SECTIONS[args.command], {})
    runtime = config.setdefault("runtime", {})
    if args.runtime:
        runtime["requested"] = args.runtime
    if args.runtime_order:
        runtime["preference"] = args.runtime_order
    if args.image:
        section["image"] = args.image
    if args.extra_args:
        extra_args = section.get("extra_args", [])
        # Invalid values from the file are left for ``RunnerConfig.build`` to reject.
        if isinstance(extra_args, (list, tuple)):
            section["extra_args"] = list(extra_args) + args.extra_args

    if args.command == "trim-galore":
        if args.pattern:
            section["primary_pattern"] = args.pattern
        if args.primary_marker:
            section["primary_marker"] = args.primary_marker
        if args.secondary_marker:
            section["secondary_marker"] = args.secondary_marker
        if args.single_end:
            section["single_end"] = True
        if args.no_recursive:
            section["recursive"] = False
        if args.preserve_subdirs:
            section["preserve_subdirs"] = True
    else:
        if args.threads is not None:
            section["threads"] = args.threads
        if args.sjdb_overhang is not None:
            section["sjdb_overhang"] = args.sjdb_overhang

    config.setdefault("strict", False)
    if args.strict:
        config["strict"] = True
    config.setdefault("verbose", False)
    if args.verbose is True:
        config["verbose"] = True
    config.setdefault("quiet", False)
    if args.quiet is True:
        config["quiet"] = True

    return config
