"""Tests for cargo_cadence.pipeline."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from cargo_cadence.backends import Cargo, NonPublisher
from cargo_cadence.errors import (
    ExternalToolError,
    GraphInconsistencyError,
    ManifestParseError,
)
from cargo_cadence.models import Increment, ReleaseSettings, ReleaseState
from cargo_cadence.pipeline import (
    default_publisher,
    discover_workspace,
    release_crate,
    release_workspace,
)
from cargo_cadence.store import MemoryStore, read_member
from conftest import ROOT, Recorder, crate, workspace_store

PUBLISH_FAILED = ExternalToolError(["cargo", "publish"], 101)


def _release(store: MemoryStore, recorder: Recorder, sleep: MagicMock, **settings):
    return release_workspace(
        ROOT,
        Increment.MINOR,
        settings=ReleaseSettings(**settings),
        publisher=recorder,
        vcs=recorder,
        store=store,
        sleep=sleep,
    )


class TestDefaultPublisher:
    def test_cargo_by_default(self) -> None:
        assert isinstance(default_publisher(ReleaseSettings()), Cargo)

    def test_nopublish(self) -> None:
        assert isinstance(default_publisher(ReleaseSettings(no_publish=True)), NonPublisher)


class TestDiscoverWorkspace:
    def test_returns_scan_and_order(self, chain_store: MemoryStore) -> None:
        scan, order = discover_workspace(chain_store, ROOT, ReleaseSettings())
        assert len(scan.records) == 4
        assert order == ["a", "d", "b", "c"]

    def test_prints_members(
        self, solv_store: MemoryStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        discover_workspace(solv_store, ROOT, ReleaseSettings())
        out = capsys.readouterr().out
        assert "solv (solv) → [solp]" in out
        assert "solp (solp)" in out


class TestReleaseWorkspace:
    def test_full_sequence(self, solv_store: MemoryStore, recorder: Recorder) -> None:
        sleep = MagicMock()

        progress = _release(solv_store, recorder, sleep)

        assert recorder.calls == [
            ("commit", "changelog: v0.2.0"),
            ("publish", "solp"),
            ("publish", "solv"),
            ("create_tag", "v0.2.0"),
            ("push_tag", "v0.2.0"),
        ]
        assert progress.state is ReleaseState.DONE
        assert progress.version == "0.2.0"
        assert progress.tag == "v0.2.0"
        assert progress.published == ["solp", "solv"]

    def test_versions_written_before_commit(
        self, solv_store: MemoryStore, recorder: Recorder
    ) -> None:
        _release(solv_store, recorder, MagicMock())
        assert read_member(solv_store, ROOT / "solv" / "Cargo.toml").version == "0.2.0"
        assert read_member(solv_store, ROOT / "solp" / "Cargo.toml").version == "0.2.0"

    def test_publishes_in_dependency_order(
        self, chain_store: MemoryStore, recorder: Recorder
    ) -> None:
        _release(chain_store, recorder, MagicMock())
        published = [c[1] for c in recorder.calls if c[0] == "publish"]
        assert published == ["a", "d", "b", "c"]

    def test_delay_between_publishes_not_after_last(
        self, chain_store: MemoryStore, recorder: Recorder
    ) -> None:
        sleep = MagicMock()
        _release(chain_store, recorder, sleep, delay_seconds=7)
        assert sleep.call_count == 3
        sleep.assert_called_with(7)

    def test_default_delay_is_twenty_seconds(
        self, solv_store: MemoryStore, recorder: Recorder
    ) -> None:
        sleep = MagicMock()
        _release(solv_store, recorder, sleep)
        sleep.assert_called_once_with(20)

    def test_zero_delay_never_sleeps(
        self, chain_store: MemoryStore, recorder: Recorder
    ) -> None:
        sleep = MagicMock()
        _release(chain_store, recorder, sleep, delay_seconds=0)
        sleep.assert_not_called()

    def test_publish_options_passed_through(self, solv_store: MemoryStore) -> None:
        publisher = MagicMock()
        release_workspace(
            ROOT,
            Increment.PATCH,
            settings=ReleaseSettings(all_features=True, no_verify=True),
            publisher=publisher,
            vcs=MagicMock(),
            store=solv_store,
            sleep=MagicMock(),
        )
        options = [c.args[1] for c in publisher.publish.call_args_list]
        assert [o.member_to_publish for o in options] == ["solp", "solv"]
        assert all(o.all_features and o.no_verify for o in options)
        assert all(c.args[0] == ROOT for c in publisher.publish.call_args_list)

    def test_nopublish_skips_publishing_and_delay(
        self, solv_store: MemoryStore, recorder: Recorder
    ) -> None:
        sleep = MagicMock()
        release_workspace(
            ROOT,
            Increment.PATCH,
            settings=ReleaseSettings(no_publish=True),
            vcs=recorder,
            store=solv_store,
            sleep=sleep,
        )
        assert recorder.names() == ["commit", "create_tag", "push_tag"]
        sleep.assert_not_called()

    def test_publish_failure_aborts_remaining_steps(self) -> None:
        store = workspace_store(
            {
                "a": crate("a"),
                "b": crate("b", deps='a = { path = "../a", version = "0.1.0" }'),
                "c": crate("c", deps='b = { path = "../b", version = "0.1.0" }'),
            }
        )
        recorder = Recorder(fail_on={"publish": 2}, error=PUBLISH_FAILED)

        with pytest.raises(ExternalToolError) as excinfo:
            _release(store, recorder, MagicMock())

        assert excinfo.value is PUBLISH_FAILED
        # Bump, commit and the first publish stay applied; no tag, no push
        assert recorder.calls == [("commit", "changelog: v0.2.0"), ("publish", "a")]
        for name in ("a", "b", "c"):
            assert read_member(store, ROOT / name / "Cargo.toml").version == "0.2.0"

    def test_commit_failure_prevents_publishing(
        self, solv_store: MemoryStore
    ) -> None:
        recorder = Recorder(
            fail_on={"commit": 1}, error=ExternalToolError(["git", "commit"], 1)
        )
        with pytest.raises(ExternalToolError):
            _release(solv_store, recorder, MagicMock())
        assert recorder.calls == []
        # The bump is not rolled back
        assert read_member(solv_store, ROOT / "solp" / "Cargo.toml").version == "0.2.0"

    def test_tag_failure_prevents_push(
        self, solv_store: MemoryStore
    ) -> None:
        recorder = Recorder(
            fail_on={"create_tag": 1}, error=ExternalToolError(["git", "tag"], 128)
        )
        with pytest.raises(ExternalToolError):
            _release(solv_store, recorder, MagicMock())
        assert "push_tag" not in recorder.names()
        assert recorder.names().count("publish") == 2

    def test_push_failure_propagates(self, solv_store: MemoryStore) -> None:
        recorder = Recorder(
            fail_on={"push_tag": 1}, error=ExternalToolError(["git", "push"], 1)
        )
        with pytest.raises(ExternalToolError, match="git push"):
            _release(solv_store, recorder, MagicMock())
        assert recorder.names()[-1] == "create_tag"

    def test_cycle_stops_before_any_change(self, recorder: Recorder) -> None:
        store = workspace_store(
            {
                "a": crate("a", deps='b = { path = "../b", version = "0.1.0" }'),
                "b": crate("b", deps='a = { path = "../a", version = "0.1.0" }'),
            }
        )
        before = dict(store.files)

        with pytest.raises(GraphInconsistencyError, match="cycle"):
            _release(store, recorder, MagicMock())

        assert store.files == before
        assert recorder.calls == []

    def test_skipped_member_not_published(self, recorder: Recorder) -> None:
        store = workspace_store({"a": crate("a"), "broken": "[package\n"})
        progress = _release(store, recorder, MagicMock())
        assert progress.published == ["a"]

    def test_release_version_is_highest_member(self, recorder: Recorder) -> None:
        store = workspace_store(
            {"a": crate("a", version="0.9.0"), "b": crate("b", version="3.1.4")}
        )
        progress = _release(store, recorder, MagicMock())
        assert progress.tag == "v3.2.0"
        assert ("commit", "changelog: v3.2.0") in recorder.calls


class TestReleaseCrate:
    @pytest.fixture
    def crate_store(self) -> MemoryStore:
        return MemoryStore(
            {"/crate/Cargo.toml": crate("tool", version="1.4.2", deps='a = { path = "../a", version = "0.1.0" }')}
        )

    def test_full_sequence(self, crate_store: MemoryStore, recorder: Recorder) -> None:
        progress = release_crate(
            Path("/crate"),
            Increment.PATCH,
            publisher=recorder,
            vcs=recorder,
            store=crate_store,
        )
        assert recorder.calls == [
            ("commit", "changelog: v1.4.3"),
            ("publish", ""),
            ("create_tag", "v1.4.3"),
            ("push_tag", "v1.4.3"),
        ]
        assert progress.state is ReleaseState.DONE
        assert progress.published == ["tool"]

    def test_only_own_version_changes(
        self, crate_store: MemoryStore, recorder: Recorder
    ) -> None:
        release_crate(
            "/crate", Increment.MAJOR, publisher=recorder, vcs=recorder, store=crate_store
        )
        member = read_member(crate_store, Path("/crate/Cargo.toml"))
        assert member.version == "2.0.0"
        assert member.dependencies["a"].version == "0.1.0"

    def test_malformed_manifest_fails_before_commit(self, recorder: Recorder) -> None:
        store = MemoryStore({"/crate/Cargo.toml": '[package]\nname = "x"\nversion = "1"\n'})
        with pytest.raises(ManifestParseError):
            release_crate("/crate", Increment.PATCH, publisher=recorder, vcs=recorder, store=store)
        assert recorder.calls == []

    def test_publish_failure_leaves_commit(self, crate_store: MemoryStore) -> None:
        recorder = Recorder(fail_on={"publish": 1}, error=PUBLISH_FAILED)
        with pytest.raises(ExternalToolError):
            release_crate(
                "/crate", Increment.MINOR, publisher=recorder, vcs=recorder, store=crate_store
            )
        assert recorder.calls == [("commit", "changelog: v1.5.0")]

    def test_options_have_no_member(self, crate_store: MemoryStore) -> None:
        publisher = MagicMock()
        release_crate(
            "/crate",
            Increment.PATCH,
            settings=ReleaseSettings(no_verify=True),
            publisher=publisher,
            vcs=MagicMock(),
            store=crate_store,
        )
        options = publisher.publish.call_args.args[1]
        assert options.member_to_publish is None
        assert options.no_verify
