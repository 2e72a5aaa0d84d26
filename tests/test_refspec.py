"""Tests for refspec parsing and matching."""

import pytest

from gitclient.exceptions import MalformedRefSpecError
from gitclient.refspec import RefSpec


@pytest.mark.short
class TestParse:
    def test_force_wildcard(self):
        spec = RefSpec.parse("+refs/heads/*:refs/remotes/origin/*")
        assert spec.force is True
        assert spec.source == "refs/heads/*"
        assert spec.destination == "refs/remotes/origin/*"

    def test_without_force(self):
        spec = RefSpec.parse("refs/heads/master:refs/remotes/origin/master")
        assert spec.force is False
        assert not spec.is_wildcard

    @pytest.mark.parametrize(
        "text",
        [
            "+refs/heads/*:refs/remotes/origin/*",
            "refs/heads/*:refs/remotes/upstream/*",
            "+refs/heads/master:refs/remotes/origin/master",
            "refs/tags/*:refs/tags/*",
            "refs/heads/feature/*:refs/remotes/origin/feature/*",
        ],
    )
    def test_round_trip(self, text):
        assert str(RefSpec.parse(text)) == text

    @pytest.mark.parametrize(
        "text",
        [
            "refs/heads/master",
            "+refs/heads/*",
            ":refs/remotes/origin/master",
            "refs/heads/master:",
            "+:",
            "",
            "refs/heads/*:refs/remotes/origin/master",
            "refs/heads/*/*:refs/remotes/origin/*/*",
            "a:b:c",
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(MalformedRefSpecError) as excinfo:
            RefSpec.parse(text)
        assert repr(text) in str(excinfo.value)

    def test_default_fetch(self):
        assert str(RefSpec.default_fetch("upstream")) == "+refs/heads/*:refs/remotes/upstream/*"


@pytest.mark.short
class TestMatching:
    def test_expand_wildcard(self):
        spec = RefSpec.parse("+refs/heads/*:refs/remotes/origin/*")
        assert spec.expand("refs/heads/master") == "refs/remotes/origin/master"
        assert spec.expand("refs/heads/topic/a") == "refs/remotes/origin/topic/a"
        assert spec.expand("refs/tags/v1.0") is None
        assert spec.expand("HEAD") is None

    def test_expand_exact(self):
        spec = RefSpec.parse("refs/heads/master:refs/remotes/origin/main")
        assert spec.expand("refs/heads/master") == "refs/remotes/origin/main"
        assert spec.expand("refs/heads/masterful") is None

    def test_matches_destination(self):
        spec = RefSpec.parse("+refs/heads/*:refs/remotes/origin/*")
        assert spec.matches_destination("refs/remotes/origin/gone")
        assert not spec.matches_destination("refs/remotes/upstream/gone")

    def test_value_semantics(self):
        assert RefSpec.parse("+a/*:b/*") == RefSpec("a/*", "b/*", True)
        assert len({RefSpec.parse("+a/*:b/*"), RefSpec("a/*", "b/*", True)}) == 1
