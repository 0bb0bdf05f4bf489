"""Tests for the exploration session store."""

import asyncio

import pytest

from rabbithole.core.exceptions import DatabaseError, SessionNotFound
from rabbithole.persistence.models import ClientInfo, Turn


class TestStartSession:
    """Tests for starting sessions."""

    @pytest.mark.asyncio
    async def test_start_session(self, sessions, make_answer):
        """Test that a new session holds exactly turn 0."""
        session = await sessions.start_session(
            "Why is the sky blue?",
            make_answer(2),
            mode="focused",
            concept="optics",
            client=ClientInfo(ip_hash="abc", user_agent="pytest"),
        )

        assert session.id
        assert session.status == "success"
        assert session.root_query == "Why is the sky blue?"
        assert session.mode == "focused"
        assert session.concept == "optics"
        assert session.client.ip_hash == "abc"
        assert len(session.turns) == 1
        assert session.turns[0].sequence_index == 0
        assert session.turns[0].answer.follow_up_questions == ["Question 0?", "Question 1?"]
        assert session.created_at is not None

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, sessions, make_answer):
        """Test that every session gets a fresh id."""
        first = await sessions.start_session("a", make_answer(), mode="expansive")
        second = await sessions.start_session("a", make_answer(), mode="expansive")
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_get_round_trip(self, sessions, make_answer):
        """Test reading a session back from storage."""
        created = await sessions.start_session("q", make_answer(1, "Body"), mode="expansive")

        loaded = await sessions.get(created.id)

        assert loaded.id == created.id
        assert loaded.turns[0].answer.main_text == "Body"
        assert loaded.turns[0].answer.follow_up_questions == ["Question 0?"]


class TestAppendTurn:
    """Tests for appending turns."""

    @pytest.mark.asyncio
    async def test_append_assigns_next_index(self, sessions, make_answer):
        """Test that an appended turn gets the current turn count as its index."""
        session = await sessions.start_session("q0", make_answer(), mode="expansive")

        updated = await sessions.append_turn(session.id, "q1", make_answer(1))

        assert [t.sequence_index for t in updated.turns] == [0, 1]
        assert [t.query for t in updated.turns] == ["q0", "q1"]

    @pytest.mark.asyncio
    async def test_prior_turns_are_unchanged(self, sessions, make_answer):
        """Test that appending never alters existing turns."""
        session = await sessions.start_session("q0", make_answer(2, "First"), mode="expansive")
        before = session.turns[0]

        updated = await sessions.append_turn(session.id, "q1", make_answer())

        assert updated.turns[0] == before

    @pytest.mark.asyncio
    async def test_concurrent_appends(self, sessions, make_answer):
        """Test that concurrent appends to one session get distinct indexes."""
        session = await sessions.start_session("q0", make_answer(), mode="expansive")

        await asyncio.gather(
            sessions.append_turn(session.id, "q1", make_answer()),
            sessions.append_turn(session.id, "q2", make_answer()),
        )

        loaded = await sessions.get(session.id)
        assert [t.sequence_index for t in loaded.turns] == [0, 1, 2]
        assert {t.query for t in loaded.turns[1:]} == {"q1", "q2"}

    @pytest.mark.asyncio
    async def test_unknown_session(self, sessions, make_answer):
        """Test appending to a session that does not exist."""
        with pytest.raises(SessionNotFound):
            await sessions.append_turn("missing", "q", make_answer())

    @pytest.mark.asyncio
    async def test_error_record_is_not_resumable(self, sessions, make_answer):
        """Test that an error record cannot be continued."""
        record = await sessions.record_failure("q", "boom")

        with pytest.raises(SessionNotFound):
            await sessions.append_turn(record.id, "q1", make_answer())


class TestFailuresAndRecent:
    """Tests for error records and recent-session listing."""

    @pytest.mark.asyncio
    async def test_record_failure(self, sessions):
        """Test that a failure record has status, message and no turns."""
        record = await sessions.record_failure("q", "Search service error", mode="focused")

        loaded = await sessions.get(record.id)
        assert loaded.status == "error"
        assert loaded.error == "Search service error"
        assert loaded.turns == []

    @pytest.mark.asyncio
    async def test_get_unknown(self, sessions):
        """Test reading a session that does not exist."""
        with pytest.raises(SessionNotFound):
            await sessions.get("missing")

    @pytest.mark.asyncio
    async def test_recent_excludes_errors(self, sessions, make_answer):
        """Test that recent sessions are newest first and successful only."""
        first = await sessions.start_session("first", make_answer(), mode="expansive")
        await sessions.record_failure("failed", "boom")
        second = await sessions.start_session("second", make_answer(), mode="expansive")

        recent = await sessions.recent_successful(5)

        assert [s.id for s in recent] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_recent_limit(self, sessions, make_answer):
        """Test that the recent listing honors its limit."""
        for i in range(4):
            await sessions.start_session(f"q{i}", make_answer(), mode="expansive")

        recent = await sessions.recent_successful(2)

        assert [s.root_query for s in recent] == ["q3", "q2"]


class TestDatabaseService:
    """Tests for the persistence layer's append-only guarantees."""

    @pytest.mark.asyncio
    async def test_duplicate_sequence_index(self, sessions, test_db, make_answer):
        """Test that a second turn with a taken index is rejected."""
        session = await sessions.start_session("q0", make_answer(), mode="expansive")

        with pytest.raises(DatabaseError):
            await test_db.append_to_history(
                session.id, Turn(query="again", answer=make_answer(), sequence_index=0)
            )

        loaded = await sessions.get(session.id)
        assert [t.query for t in loaded.turns] == ["q0"]

    @pytest.mark.asyncio
    async def test_append_to_unknown_session(self, test_db, make_answer):
        """Test appending directly to a session that does not exist."""
        with pytest.raises(SessionNotFound):
            await test_db.append_to_history(
                "missing", Turn(query="q", answer=make_answer(), sequence_index=0)
            )

    @pytest.mark.asyncio
    async def test_answer_round_trip(self, test_db, sessions, make_answer):
        """Test that stored answers are read back field for field."""
        answer = make_answer(3, "#### Heading\nBody")
        session = await sessions.start_session("q", answer, mode="expansive")

        loaded = await test_db.find_by_id(session.id)

        assert loaded.turns[0].answer == answer
