"""Invocation templates for the wrapped bioinformatics tools."""


class ToolTemplate:
    """Base class for building the tool part of a command line."""

    #: Short name, used for the run log file name
    name = None
    #: Program to call inside the container (or on the host)
    program = None

    def arguments(self, inputs, out_path, options=()):
        """Return argument vector for running the tool on ``inputs`` writing to ``out_path``."""
        raise NotImplementedError("Override me!")

    def version_arguments(self):
        return [self.program, "--version"]


class TrimGalore(ToolTemplate):
    """Adapter and quality trimming with Trim Galore."""

    name = "trimgalore"
    program = "trim_galore"

    def arguments(self, inputs, out_path, options=()):
        argv = [self.program]
        if len(inputs) > 1:
            argv.append("--paired")
        argv += list(options)
        argv += list(inputs)
        argv += ["-o", out_path]
        return argv


class StarGenomeIndex(ToolTemplate):
    """Genome index generation with STAR.

    ``inputs`` is the genome FASTA file, optionally followed by a GTF annotation.  Splice junction
    parameters are only passed when an annotation is given.
    """

    name = "star"
    program = "STAR"

    def __init__(self, threads=4, sjdb_overhang=100):
        self.threads = threads
        self.sjdb_overhang = sjdb_overhang

    def arguments(self, inputs, out_path, options=()):
        fasta, *rest = inputs
        argv = [
            self.program,
            "--runThreadN",
            self.threads,
            "--runMode",
            "genomeGenerate",
            "--genomeDir",
            out_path,
            "--genomeFastaFiles",
            fasta,
        ]
        if rest:
            argv += ["--sjdbGTFfile", rest[0], "--sjdbOverhang", self.sjdb_overhang]
        argv += list(options)
        return list(map(str, argv))
