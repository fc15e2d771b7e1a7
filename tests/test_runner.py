import os

import pytest

from omics_runner.backends import DirectBackend, DockerBackend, SingularityBackend
from omics_runner.pairing import JobInput
from omics_runner.run_log import FAILURE, SKIPPED, STARTED, SUCCESS, RunLog
from omics_runner.runner import CommandSpec, JobRunner
from omics_runner.tools import StarGenomeIndex, TrimGalore

from helpers import FakeCall

IMAGE = "quay.io/biocontainers/trim-galore:0.6.7--hdfd78af_0"


def make_job(input_dir, subdir="."):
    base = os.path.normpath(os.path.join(str(input_dir), subdir))
    return JobInput(
        primary_path=os.path.join(base, "s1_R1.fastq.gz"),
        secondary_path=os.path.join(base, "s1_R2.fastq.gz"),
        relative_subdir=subdir,
    )


def make_runner(tmp_path, run_log, backend=None, tool=None, call=None, **kwargs):
    return JobRunner(
        backend or SingularityBackend(),
        tool or TrimGalore(),
        IMAGE,
        str(tmp_path / "in"),
        str(tmp_path / "out"),
        run_log,
        call=call or FakeCall(),
        **kwargs
    )


def test_command_spec_str_quotes():
    cmd = CommandSpec(["trim_galore", "--paired", "/data/my sample_R1.fq", 3])
    assert cmd.argv == ("trim_galore", "--paired", "/data/my sample_R1.fq", "3")
    assert str(cmd) == "trim_galore --paired '/data/my sample_R1.fq' 3"


def test_build_command_singularity(tmp_path):
    runner = make_runner(tmp_path, None, options=["--quality", "25"])
    cmd = runner.build_command(make_job(tmp_path / "in", "run1"))
    assert cmd.argv == (
        "singularity",
        "exec",
        "--bind",
        "%s:/data:ro" % (tmp_path / "in"),
        "--bind",
        "%s:/out" % (tmp_path / "out"),
        IMAGE,
        "trim_galore",
        "--paired",
        "--quality",
        "25",
        "/data/run1/s1_R1.fastq.gz",
        "/data/run1/s1_R2.fastq.gz",
        "-o",
        "/out",
    )


def test_build_command_docker_preserve_subdirs(tmp_path):
    runner = make_runner(tmp_path, None, backend=DockerBackend(), preserve_subdirs=True)
    cmd = runner.build_command(make_job(tmp_path / "in", "run1"))
    assert cmd.argv[:3] == ("docker", "run", "--rm")
    assert cmd.argv[-2:] == ("-o", "/out/run1")


def test_build_command_direct(tmp_path):
    runner = make_runner(tmp_path, None, backend=DirectBackend())
    cmd = runner.build_command(make_job(tmp_path / "in"))
    assert cmd.argv == (
        "trim_galore",
        "--paired",
        str(tmp_path / "in" / "s1_R1.fastq.gz"),
        str(tmp_path / "in" / "s1_R2.fastq.gz"),
        "-o",
        str(tmp_path / "out"),
    )


def test_build_command_single_end(tmp_path):
    runner = make_runner(tmp_path, None)
    job = JobInput(primary_path=str(tmp_path / "in" / "a.fastq.gz"))
    assert runner.build_command(job).argv[-4:] == ("trim_galore", "/data/a.fastq.gz", "-o", "/out")


def test_build_command_star(tmp_path):
    runner = make_runner(tmp_path, None, tool=StarGenomeIndex(threads=8, sjdb_overhang=149))
    job = JobInput(
        primary_path=str(tmp_path / "in" / "genome.fa"),
        secondary_path=str(tmp_path / "in" / "genes.gtf"),
    )
    assert runner.build_command(job).argv[7:] == (
        "STAR",
        "--runThreadN",
        "8",
        "--runMode",
        "genomeGenerate",
        "--genomeDir",
        "/out",
        "--genomeFastaFiles",
        "/data/genome.fa",
        "--sjdbGTFfile",
        "/data/genes.gtf",
        "--sjdbOverhang",
        "149",
    )


def test_run_success(tmp_path):
    call = FakeCall(0)
    with RunLog(str(tmp_path / "run.log")) as run_log:
        runner = make_runner(tmp_path, run_log, call=call, preserve_subdirs=True)
        record = runner.run(make_job(tmp_path / "in", "run1"))

    assert record.outcome == SUCCESS
    assert record.detail == "processed s1_R1.fastq.gz + s1_R2.fastq.gz"
    assert [r.outcome for r in run_log.records] == [STARTED, SUCCESS]
    cmd = runner.build_command(make_job(tmp_path / "in", "run1"))
    assert run_log.records[0].detail == str(cmd)
    assert len(call.calls) == 1
    assert os.path.isdir(str(tmp_path / "out" / "run1"))


def test_run_failure(tmp_path):
    with RunLog(str(tmp_path / "run.log")) as run_log:
        runner = make_runner(tmp_path, run_log, call=FakeCall(2))
        record = runner.run(make_job(tmp_path / "in"))

    assert record.outcome == FAILURE
    assert record.detail.startswith("exit status 2: singularity exec")
    assert [r.outcome for r in run_log.records] == [STARTED, FAILURE]


def test_run_launch_error_is_failure(tmp_path):
    call = FakeCall(FileNotFoundError(2, "No such file or directory", "singularity"))
    with RunLog(str(tmp_path / "run.log")) as run_log:
        runner = make_runner(tmp_path, run_log, call=call)
        record = runner.run(make_job(tmp_path / "in"))

    assert record.outcome == FAILURE
    assert "could not execute" in record.detail


def test_run_continues_after_failures(tmp_path):
    call = FakeCall(1, 0, 1)
    with RunLog(str(tmp_path / "run.log")) as run_log:
        runner = make_runner(tmp_path, run_log, call=call)
        outcomes = [runner.run(make_job(tmp_path / "in", sub)).outcome for sub in "abc"]

    assert outcomes == [FAILURE, SUCCESS, FAILURE]
    assert len(run_log.records) == 6
    assert [r.outcome for r in run_log.records[::2]] == [STARTED] * 3


def test_skip_does_not_execute(tmp_path):
    call = FakeCall()
    job = JobInput(
        primary_path=str(tmp_path / "in" / "s2_R1.fastq"),
        status="unmatched",
        reason="mate file not found for s2_R1.fastq, expected s2_R2.fastq",
    )
    with RunLog(str(tmp_path / "run.log")) as run_log:
        runner = make_runner(tmp_path, run_log, call=call)
        record = runner.skip(job)
        with pytest.raises(ValueError):
            runner.run(job)

    assert record.outcome == SKIPPED
    assert record.detail == job.reason
    assert call.calls == []
    assert run_log.records == [record]


def test_report_version(tmp_path):
    call = FakeCall(0)
    runner = make_runner(tmp_path, None, call=call, tool=StarGenomeIndex())
    assert runner.report_version() == 0
    assert call.calls[0][-2:] == ["STAR", "--version"]


def test_report_version_launch_error(tmp_path):
    runner = make_runner(tmp_path, None, call=FakeCall(OSError("gone")))
    assert runner.report_version() is None
