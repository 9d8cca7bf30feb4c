"""Tests for reply sentence parsing."""

import pytest

from routeros_api.infra.routeros.exceptions import RouterOSProtocolError
from routeros_api.infra.routeros.reply import Reply, ReplyKind


class TestReplyKind:
    """Tests for ReplyKind."""

    def test_markers(self) -> None:
        assert ReplyKind("!done") is ReplyKind.DONE
        assert ReplyKind("!re") is ReplyKind.ROW
        assert ReplyKind("!trap") is ReplyKind.TRAP
        assert ReplyKind("!fatal") is ReplyKind.FATAL

    def test_terminal_kinds(self) -> None:
        assert ReplyKind.DONE.is_terminal
        assert ReplyKind.FATAL.is_terminal
        assert not ReplyKind.ROW.is_terminal
        assert not ReplyKind.TRAP.is_terminal


class TestReplyParsing:
    """Tests for Reply.from_words."""

    def test_row_with_attributes_and_tag(self) -> None:
        reply = Reply.from_words(["!re", "=name=MyRouter", ".tag=4"])

        assert reply.kind is ReplyKind.ROW
        assert reply.tag == "4"
        assert reply["name"] == "MyRouter"
        assert dict(reply.attributes) == {"name": "MyRouter"}
        assert reply.words == ("!re", "=name=MyRouter", ".tag=4")

    def test_value_may_contain_equals(self) -> None:
        reply = Reply.from_words(["!re", "=comment=a=b=c"])
        assert reply["comment"] == "a=b=c"

    def test_empty_value_differs_from_missing(self) -> None:
        """Test an attribute set to "" is present, a missing one is not."""
        reply = Reply.from_words(["!re", "=comment="])

        assert reply.has("comment")
        assert "comment" in reply
        assert reply.get("comment") == ""
        assert not reply.has("disabled")
        assert reply.get("disabled") is None
        assert reply.get("disabled", "no") == "no"

    def test_dotted_attribute_other_than_tag(self) -> None:
        reply = Reply.from_words(["!re", "=.id=*1", ".section=2"])

        assert reply[".id"] == "*1"
        assert reply[".section"] == "2"
        assert reply.tag is None

    def test_untagged_done(self) -> None:
        reply = Reply.from_words(["!done"])

        assert reply.kind is ReplyKind.DONE
        assert reply.tag is None
        assert reply.is_terminal
        assert list(reply) == []

    def test_fatal_free_text(self) -> None:
        reply = Reply.from_words(["!fatal", "session", "terminated", "on", "request"])

        assert reply.kind is ReplyKind.FATAL
        assert reply.text == ("session", "terminated", "on", "request")
        assert reply.message == "session terminated on request"

    def test_message_prefers_attribute(self) -> None:
        reply = Reply.from_words(["!trap", "=message=no such command", "extra"])
        assert reply.message == "no such command"

    def test_message_absent(self) -> None:
        assert Reply.from_words(["!done"]).message is None

    def test_attributes_are_read_only(self) -> None:
        reply = Reply.from_words(["!re", "=name=a"])
        with pytest.raises(TypeError):
            reply.attributes["name"] = "b"  # type: ignore[index]

    def test_empty_sentence_rejected(self) -> None:
        with pytest.raises(RouterOSProtocolError, match="Empty"):
            Reply.from_words([])

    def test_unknown_marker_rejected(self) -> None:
        with pytest.raises(RouterOSProtocolError, match="Unknown reply sentence type"):
            Reply.from_words(["!bogus", ".tag=1"])

    def test_duplicate_attribute_rejected(self) -> None:
        with pytest.raises(RouterOSProtocolError, match="Duplicate attribute"):
            Reply.from_words(["!re", "=name=a", "=name=b"])

    def test_duplicate_tag_rejected(self) -> None:
        with pytest.raises(RouterOSProtocolError, match="Duplicate .tag"):
            Reply.from_words(["!done", ".tag=1", ".tag=2"])

    def test_direct_construction_wraps_attributes(self) -> None:
        source = {"name": "x"}
        reply = Reply(ReplyKind.ROW, source)
        source["name"] = "changed"

        assert reply["name"] == "x"
