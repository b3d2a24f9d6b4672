"""
Tests for journal entry indexing: chunk embedding, partial failures,
enrichment and transactional rollback.
"""

from datetime import date
from uuid import uuid4

import pytest

from journal_recall.core.errors import Forbidden, NotFound, RequestTimeout, ServiceError, StoreError
from journal_recall.domain.models import EmbeddingType, UpsertEntryCommand
from journal_recall.services.indexing import JournalIndexingService, UpsertState

THREE_SENTENCES = "First sentence here. Second sentence here. Third sentence here."


def _command(text: str = THREE_SENTENCES, **overrides) -> UpsertEntryCommand:
    return UpsertEntryCommand(owner_id=overrides.pop("owner_id", "u1"), text=text, **overrides)


class TestCreateEntry:
    async def test_all_chunks_indexed(self, indexing_service, store):
        result = await indexing_service.upsert_entry(_command())

        assert result.state == UpsertState.COMMITTED
        assert result.indexed_chunks == [0, 1, 2]
        assert result.skipped_chunks == []
        stored = await store.get_chunks(result.entry.id)
        assert [c.text for c in stored] == [
            "First sentence here.",
            "Second sentence here.",
            "Third sentence here.",
        ]
        assert all(len(c.embedding) == 64 for c in stored)
        assert store.commits == 1

    async def test_state_history(self, indexing_service):
        result = await indexing_service.upsert_entry(_command())

        assert result.history == [
            UpsertState.STARTED,
            UpsertState.CHUNKED,
            UpsertState.EMBEDDING,
            UpsertState.ALL_EMBEDDED,
            UpsertState.INDEXED,
            UpsertState.COMMITTED,
        ]

    async def test_failed_chunk_is_skipped(self, indexing_service, store, embeddings):
        embeddings.fail_on.add("Second sentence here.")

        result = await indexing_service.upsert_entry(_command())

        assert result.indexed_chunks == [0, 2]
        assert result.skipped_chunks == [1]
        assert UpsertState.PARTIAL_EMBEDDING_FAILURE in result.history
        assert result.state == UpsertState.COMMITTED
        stored = await store.get_chunks(result.entry.id)
        assert [(c.chunk_index, c.text) for c in stored] == [
            (0, "First sentence here."),
            (2, "Third sentence here."),
        ]

    async def test_every_chunk_failing_still_saves_entry(self, indexing_service, store, embeddings):
        embeddings.fail_all = True

        result = await indexing_service.upsert_entry(_command())

        assert result.indexed_chunks == []
        assert result.skipped_chunks == [0, 1, 2]
        assert result.entry.id in store.entries
        assert await store.get_chunks(result.entry.id) == []
        assert result.entry.id not in store.entry_embeddings

    async def test_whole_entry_embedding_stored(self, indexing_service, store, embeddings):
        result = await indexing_service.upsert_entry(_command())

        assert (THREE_SENTENCES, EmbeddingType.DOCUMENT) in embeddings.calls
        assert len(store.entry_embeddings[result.entry.id]) == 64

    async def test_whole_entry_embedding_optional(self, indexing_service, store):
        result = await indexing_service.upsert_entry(_command(embed_whole_entry=False))

        assert result.entry.id not in store.entry_embeddings

    async def test_derived_fields_filled(self, indexing_service, store):
        result = await indexing_service.upsert_entry(_command())

        saved = store.entries[result.entry.id]
        assert saved.image_path == f"/images/{result.entry.id}.png"
        assert saved.emotion_labels == ["joy", "gratitude"]
        assert saved.reflection_prompt == "What made today feel good?"

    async def test_enrichment_failure_leaves_field_empty(self, indexing_service, store, image_generator):
        image_generator.fail = True

        result = await indexing_service.upsert_entry(_command())

        saved = store.entries[result.entry.id]
        assert saved.image_path is None
        assert saved.emotion_labels == ["joy", "gratitude"]
        assert result.state == UpsertState.COMMITTED

    async def test_enrichment_can_be_switched_off(self, indexing_service, image_generator, emotion_classifier):
        result = await indexing_service.upsert_entry(_command(generate_image=False, classify_emotions=False))

        assert image_generator.calls == []
        assert emotion_classifier.calls == []
        assert result.entry.image_path is None
        assert result.entry.emotion_labels is None

    async def test_punctuation_only_text_is_one_chunk(self, indexing_service, store):
        result = await indexing_service.upsert_entry(_command(text="   ...   "))

        assert result.indexed_chunks == [0]
        assert [c.text for c in await store.get_chunks(result.entry.id)] == ["..."]

    async def test_embedding_concurrency_is_bounded(self, store, embeddings):
        embeddings.delay = 0.01
        service = JournalIndexingService(store, embeddings, embedding_concurrency=2)
        text = " ".join(f"Sentence number {i}." for i in range(8))

        result = await service.upsert_entry(_command(text=text, embed_whole_entry=False))

        assert len(result.indexed_chunks) == 8
        assert embeddings.max_in_flight == 2


class TestUpdateEntry:
    async def test_update_replaces_chunks(self, indexing_service, store):
        created = await indexing_service.upsert_entry(_command())
        old_ids = {c.id for c in await store.get_chunks(created.entry.id)}

        updated = await indexing_service.upsert_entry(
            _command(text="Only one now. And a second.", entry_id=created.entry.id)
        )

        chunks = await store.get_chunks(created.entry.id)
        assert [c.text for c in chunks] == ["Only one now.", "And a second."]
        assert [c.chunk_index for c in chunks] == [0, 1]
        assert old_ids.isdisjoint({c.id for c in chunks})
        assert updated.entry.id == created.entry.id
        assert store.entries[created.entry.id].text == "Only one now. And a second."

    async def test_update_preserves_created_at_and_entry_date(self, indexing_service, store):
        created = await indexing_service.upsert_entry(_command(entry_date=date(2024, 3, 1)))

        updated = await indexing_service.upsert_entry(_command(text="Changed.", entry_id=created.entry.id))

        assert updated.entry.created_at == created.entry.created_at
        assert updated.entry.modified_at >= created.entry.modified_at
        assert updated.entry.entry_date == date(2024, 3, 1)

    async def test_repeated_update_is_idempotent(self, indexing_service, store):
        created = await indexing_service.upsert_entry(_command())
        command = _command(text="Same words. Same order.", entry_id=created.entry.id)

        await indexing_service.upsert_entry(command)
        first = [(c.chunk_index, c.text) for c in await store.get_chunks(created.entry.id)]
        await indexing_service.upsert_entry(command)
        second = [(c.chunk_index, c.text) for c in await store.get_chunks(created.entry.id)]

        assert first == second == [(0, "Same words."), (1, "Same order.")]

    async def test_missing_entry(self, indexing_service, store):
        with pytest.raises(NotFound):
            await indexing_service.upsert_entry(_command(entry_id=uuid4()))
        assert store.entries == {}

    async def test_entry_of_another_owner(self, indexing_service, store):
        created = await indexing_service.upsert_entry(_command(owner_id="owner"))

        with pytest.raises(Forbidden):
            await indexing_service.upsert_entry(_command(text="Hijack.", owner_id="intruder", entry_id=created.entry.id))

        assert store.entries[created.entry.id].text == THREE_SENTENCES


class TestFailedWrites:
    async def test_store_failure_rolls_back(self, indexing_service, store):
        store.fail_operations.add("replace_chunks")

        with pytest.raises(StoreError):
            await indexing_service.upsert_entry(_command())

        assert store.entries == {}
        assert store.chunks == {}
        assert store.rollbacks == 1
        assert store.commits == 0

    async def test_failed_update_keeps_previous_version(self, indexing_service, store):
        created = await indexing_service.upsert_entry(_command())
        store.fail_operations.add("update_derived_fields")

        with pytest.raises(StoreError):
            await indexing_service.upsert_entry(_command(text="New text.", entry_id=created.entry.id))

        assert store.entries[created.entry.id].text == THREE_SENTENCES
        assert len(await store.get_chunks(created.entry.id)) == 3

    async def test_timeout_cancels_and_rolls_back(self, store, embeddings):
        embeddings.delay = 1.0
        service = JournalIndexingService(store, embeddings, request_timeout=0.05)

        with pytest.raises(RequestTimeout):
            await service.upsert_entry(_command())

        assert store.entries == {}
        assert store.rollbacks == 1
        assert embeddings.in_flight == 0


class TestEntryAccess:
    async def test_get_entry_with_chunks(self, indexing_service):
        created = await indexing_service.upsert_entry(_command())

        loaded = await indexing_service.get_entry("u1", created.entry.id)

        assert loaded.entry.id == created.entry.id
        assert [c.chunk_index for c in loaded.chunks] == [0, 1, 2]

    async def test_get_entry_of_another_owner(self, indexing_service):
        created = await indexing_service.upsert_entry(_command())

        with pytest.raises(Forbidden):
            await indexing_service.get_entry("u2", created.entry.id)

    async def test_delete_entry(self, indexing_service, store):
        created = await indexing_service.upsert_entry(_command())

        await indexing_service.delete_entry("u1", created.entry.id)

        assert created.entry.id not in store.entries
        assert created.entry.id not in store.chunks
        assert created.entry.id not in store.entry_embeddings
        with pytest.raises(NotFound):
            await indexing_service.get_entry("u1", created.entry.id)

    async def test_delete_missing_entry(self, indexing_service):
        with pytest.raises(NotFound):
            await indexing_service.delete_entry("u1", uuid4())

    async def test_list_entries_most_recent_first(self, indexing_service):
        first = await indexing_service.upsert_entry(_command(text="Older entry."))
        second = await indexing_service.upsert_entry(_command(text="Newer entry."))

        entries = await indexing_service.list_entries("u1")

        assert [e.id for e in entries] == [second.entry.id, first.entry.id]

    async def test_reflection_prompt(self, indexing_service):
        assert await indexing_service.reflection_prompt("Today was odd.") == "What would you like to remember about this?"

    async def test_reflection_prompt_without_classifier(self, store, embeddings):
        service = JournalIndexingService(store, embeddings)

        with pytest.raises(ServiceError):
            await service.reflection_prompt("Anything.")


class TestEnrichmentDeadline:
    async def test_slow_image_does_not_fail_write(self, store, embeddings, image_generator, emotion_classifier):
        image_generator.delay = 1.0
        service = JournalIndexingService(
            store,
            embeddings,
            emotion_classifier=emotion_classifier,
            image_generator=image_generator,
            request_timeout=0.2,
        )

        result = await service.upsert_entry(_command(text="I am happy today. The sun is out."))

        assert result.state == UpsertState.COMMITTED
        saved = store.entries[result.entry.id]
        assert saved.image_path is None
        assert saved.emotion_labels == ["joy", "gratitude"]
        assert len(store.chunks[result.entry.id]) == 2

    @pytest.mark.parametrize(
        ("request_timeout", "enrichment_timeout", "expected"),
        [(30.0, None, 15.0), (30.0, 5.0, 5.0), (4.0, 10.0, 2.0)],
    )
    def test_deadline_stays_inside_request_budget(
        self, store, embeddings, request_timeout, enrichment_timeout, expected
    ):
        service = JournalIndexingService(
            store, embeddings, request_timeout=request_timeout, enrichment_timeout=enrichment_timeout
        )

        assert service.enrichment_deadline == expected


class TestUpdateDerivedState:
    async def test_failed_whole_entry_embedding_drops_old_vector(self, indexing_service, store, embeddings):
        created = await indexing_service.upsert_entry(_command(text="Old text about cats."))
        assert created.entry.id in store.entry_embeddings
        embeddings.fail_on.add("New text about dogs.")

        await indexing_service.upsert_entry(_command(text="New text about dogs.", entry_id=created.entry.id))

        assert store.entries[created.entry.id].text == "New text about dogs."
        assert created.entry.id not in store.entry_embeddings

    async def test_update_without_whole_entry_embedding_drops_old_vector(self, indexing_service, store):
        created = await indexing_service.upsert_entry(_command())

        await indexing_service.upsert_entry(
            _command(text="Shorter now.", entry_id=created.entry.id, embed_whole_entry=False)
        )

        assert created.entry.id not in store.entry_embeddings

    async def test_unrequested_enrichment_keeps_stored_fields(self, indexing_service, store, image_generator):
        created = await indexing_service.upsert_entry(_command())
        image_generator.calls.clear()

        updated = await indexing_service.upsert_entry(
            _command(text="Edited.", entry_id=created.entry.id, generate_image=False, classify_emotions=False)
        )

        saved = store.entries[created.entry.id]
        assert image_generator.calls == []
        assert saved.image_path == f"/images/{created.entry.id}.png"
        assert saved.emotion_labels == ["joy", "gratitude"]
        assert saved.reflection_prompt == "What made today feel good?"
        assert updated.entry.image_path == saved.image_path

    async def test_failed_enrichment_on_update_empties_field(self, indexing_service, store, image_generator):
        created = await indexing_service.upsert_entry(_command())
        image_generator.fail = True

        await indexing_service.upsert_entry(_command(text="Edited.", entry_id=created.entry.id))

        assert store.entries[created.entry.id].image_path is None


class TestImageCleanup:
    async def test_rolled_back_create_discards_image(self, indexing_service, store, image_generator):
        store.fail_operations.add("commit")

        with pytest.raises(StoreError):
            await indexing_service.upsert_entry(_command())

        assert image_generator.discarded == [image_generator.calls[0][1]]

    async def test_rolled_back_update_keeps_existing_image(self, indexing_service, store, image_generator):
        created = await indexing_service.upsert_entry(_command())
        store.fail_operations.add("update_derived_fields")

        with pytest.raises(StoreError):
            await indexing_service.upsert_entry(_command(text="New text.", entry_id=created.entry.id))

        assert image_generator.discarded == []
        assert store.entries[created.entry.id].image_path == f"/images/{created.entry.id}.png"

    async def test_forbidden_update_never_touches_image(self, indexing_service, image_generator):
        created = await indexing_service.upsert_entry(_command(owner_id="owner"))

        with pytest.raises(Forbidden):
            await indexing_service.upsert_entry(_command(owner_id="intruder", entry_id=created.entry.id))

        assert image_generator.discarded == []
