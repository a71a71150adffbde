"""Tests for papers.rename — the rename-files pass."""

import pytest
from conftest import make_pdf, write_note

from papers import rename as rename_mod
from papers.errors import RenameError
from papers.paper import PaperMeta
from papers.rename import (
    EXISTS,
    FAILED,
    MISSING,
    MOVED,
    PLANNED,
    UNCHANGED,
    Strategy,
    candidate_name,
    document_dest,
    rename_files,
)

TITLE = "Scaling quantum interference from molecules to cages"


def _statuses(report, kind):
    return [a.status for a in report.actions if a.kind == kind]


class TestStrategy:
    def test_title(self):
        assert Strategy.TITLE.rename(PaperMeta(title="A: B/C")) == "A BC"

    def test_title_unusable(self):
        with pytest.raises(RenameError, match="missing title"):
            Strategy.TITLE.rename(PaperMeta(title="..."))

    def test_key(self):
        meta = PaperMeta(
            title="Folding DNA to Create Nanoscale Shapes",
            authors=["Paul Rothemund"],
            labels={"year": 2006},
        )
        assert Strategy.KEY.rename(meta) == "rothemund2006foldingdna"

    def test_from_value(self):
        assert Strategy("key") is Strategy.KEY


class TestCandidateName:
    def test_first_success_wins(self):
        meta = PaperMeta(title="No Authors Here")
        assert candidate_name(meta, [Strategy.KEY, Strategy.TITLE]) == "No Authors Here"

    def test_all_fail(self):
        with pytest.raises(RenameError, match="key: missing authors"):
            candidate_name(PaperMeta(title="No Authors Here"), [Strategy.KEY])

    def test_no_strategies(self):
        with pytest.raises(RenameError):
            candidate_name(PaperMeta(title="T"), [])


class TestDocumentDest:
    def test_keeps_directory(self, repo):
        (repo.root / "pdfs").mkdir()
        make_pdf(repo.root / "pdfs" / "x.pdf")
        assert document_dest(repo, "pdfs/x.pdf", "New") == "pdfs/New.pdf"

    def test_sniffed_extension_wins(self, repo):
        make_pdf(repo.root / "download")
        assert document_dest(repo, "download", "New") == "New.pdf"

    def test_falls_back_to_suffix(self, repo, monkeypatch):
        monkeypatch.setattr(rename_mod, "detect_extension", lambda path: None)
        (repo.root / "book.djvu").write_bytes(b"AT&TFORM")
        assert document_dest(repo, "book.djvu", "New") == "New.djvu"

    def test_no_extension_at_all(self, repo, monkeypatch):
        monkeypatch.setattr(rename_mod, "detect_extension", lambda path: None)
        (repo.root / "blob").write_bytes(b"\x00")
        assert document_dest(repo, "blob", "New") == "New"


class TestRenameFiles:
    def test_renames_document(self, repo, sample_pdf):
        repo.add(TITLE, file=sample_pdf)
        report = rename_files(repo, [Strategy.TITLE])
        assert _statuses(report, "document") == [MOVED]
        assert not sample_pdf.exists()
        assert (repo.root / f"{TITLE}.pdf").is_file()
        assert repo.get_paper(f"{TITLE}.md").meta.filename == f"{TITLE}.pdf"

    def test_second_run_is_noop(self, repo, sample_pdf):
        repo.add(TITLE, file=sample_pdf)
        write_note(repo.root, "foo.md", "Bar")
        first = rename_files(repo, [Strategy.TITLE])
        assert len(first.moved) == 2
        second = rename_files(repo, [Strategy.TITLE])
        assert second.moved == []
        assert {a.status for a in second.actions} == {UNCHANGED}

    def test_renames_note(self, repo):
        write_note(repo.root, "foo.md", "Bar")
        report = rename_files(repo, [Strategy.TITLE])
        assert _statuses(report, "note") == [MOVED]
        assert (repo.root / "Bar.md").is_file()
        assert not (repo.root / "foo.md").exists()

    def test_dry_run_moves_nothing(self, repo, sample_pdf):
        repo.add(TITLE, file=sample_pdf)
        write_note(repo.root, "foo.md", "Bar")
        report = rename_files(repo, [Strategy.TITLE], dry_run=True)
        assert sorted(a.status for a in report.actions) == [PLANNED, PLANNED, UNCHANGED]
        assert sample_pdf.exists()
        assert (repo.root / "foo.md").exists()

    def test_existing_destination_skipped(self, repo, sample_pdf):
        repo.add(TITLE, file=sample_pdf)
        taken = make_pdf(repo.root / f"{TITLE}.pdf")
        before = taken.read_bytes()
        report = rename_files(repo, [Strategy.TITLE])
        assert _statuses(report, "document") == [EXISTS]
        assert sample_pdf.exists()
        assert taken.read_bytes() == before

    def test_note_destination_taken(self, repo):
        write_note(repo.root, "foo.md", "Bar")
        write_note(repo.root, "Bar.md", "Bar")
        report = rename_files(repo, [Strategy.TITLE])
        statuses = {a.source: a.status for a in report.actions}
        assert statuses == {"Bar.md": UNCHANGED, "foo.md": EXISTS}
        assert (repo.root / "foo.md").exists()

    def test_missing_document_reported(self, repo):
        write_note(repo.root, "Gone.md", "Gone", filename="gone.pdf")
        report = rename_files(repo, [Strategy.TITLE])
        assert _statuses(report, "document") == [MISSING]

    def test_failure_does_not_stop_pass(self, repo, sample_pdf):
        repo.add("No Authors", file=sample_pdf)
        other = make_pdf(repo.root / "other.pdf")
        repo.add(
            "Folding DNA to Create Nanoscale Shapes",
            file=other,
            authors=["Paul Rothemund"],
            labels={"year": 2006},
        )
        report = rename_files(repo, [Strategy.KEY])
        assert [a.paper.name for a in report.failed] == ["No Authors.md"]
        assert (repo.root / "rothemund2006foldingdna.pdf").is_file()
        assert sample_pdf.exists()

    def test_paper_without_document(self, repo):
        repo.add("Just A Note")
        report = rename_files(repo, [Strategy.TITLE])
        assert [(a.kind, a.status) for a in report.actions] == [("note", UNCHANGED)]
