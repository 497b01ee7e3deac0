"""Tests for the conversation entity index."""

from __future__ import annotations

import json
import threading
import unittest

from drift.entity_resolution.types import CanonicalEntity
from drift.extraction.types import ChatMessage
from drift.services.entity_index import (
    SNIPPET_MAX_LENGTH,
    ConversationEntityIndex,
    created_at_key,
    make_snippet,
)
from drift.services.index_cache import MemoryIndexCache


def _message(message_id: str, text: str, created_at: str) -> ChatMessage:
    return ChatMessage(id=message_id, author_type="assistant", created_at=created_at, text=text)


def _entity_id_for(index: ConversationEntityIndex, name: str) -> str:
    for entity in index.entities.values():
        if entity.name == name:
            return entity.id
    raise AssertionError(f"no entity named {name!r}")


class IndexMessageTests(unittest.TestCase):
    def setUp(self) -> None:
        self.index = ConversationEntityIndex("conv-1", flush_interval=0)

    def test_mentions_are_stored_in_both_buckets(self) -> None:
        mentions = self.index.index_message(
            _message("m1", "Barack Obama met Angela Merkel.", "2024-01-01T10:00:00Z")
        )

        self.assertEqual([m.surface for m in mentions], ["Barack Obama", "Angela Merkel"])
        self.assertEqual(self.index.get_mentions_by_message("m1"), mentions)
        for mention in mentions:
            self.assertIn(mention.entity_id, self.index.entities)
            self.assertIn(mention, self.index.get_all_mentions(mention.entity_id))
            self.assertEqual("Barack Obama met Angela Merkel."[mention.start : mention.end], mention.surface)

    def test_reindexing_a_message_is_a_no_op(self) -> None:
        message = _message("m1", "Barack Obama met Angela Merkel.", "2024-01-01T10:00:00Z")

        first = self.index.index_message(message)
        entity_count = len(self.index.entities)
        second = self.index.index_message(message)

        self.assertEqual(first, second)
        self.assertEqual(len(self.index.entities), entity_count)
        for entity_id in self.index.entities:
            self.assertEqual(len(self.index.get_all_mentions(entity_id)), 1)

    def test_person_entities_gain_surname_aliases(self) -> None:
        self.index.index_message(_message("m1", "Barack Obama spoke.", "2024-01-01T10:00:00Z"))

        entity = self.index.get_canonical_entity(_entity_id_for(self.index, "Barack Obama"))

        self.assertIn("Obama", entity.alt_names)
        self.assertIn("Obama's", entity.alt_names)

    def test_possessive_work_links_across_messages(self) -> None:
        m1 = self.index.index_message(
            _message("m1", "Richard J. Evans's book on the Third Reich", "2024-01-01T10:00:00Z")
        )
        m2 = self.index.index_message(_message("m2", "Evans's work shaped the field", "2024-01-01T11:00:00Z"))

        work_id = _entity_id_for(self.index, "Evans's book")
        person_id = _entity_id_for(self.index, "Evans")
        self.assertEqual(self.index.entities[work_id].type, "work")
        self.assertEqual(self.index.entities[person_id].type, "person")

        self.assertEqual({m.entity_id for m in m1} & {m.entity_id for m in m2}, {work_id, person_id})
        prior = self.index.get_latest_prior_mention(work_id, "m2")
        self.assertEqual(prior.message_id, "m1")
        self.assertEqual(prior.surface, "Evans's book")
        self.assertEqual(self.index.get_latest_prior_mention(person_id, "m2").message_id, "m1")

    def test_title_by_author_adds_author_variants_to_work(self) -> None:
        self.index.index_message(
            _message("m1", "you should read Rise And Fall by William Shirer next", "2024-01-01T10:00:00Z")
        )

        work = self.index.get_canonical_entity(_entity_id_for(self.index, "Rise And Fall"))

        self.assertIn("Shirer's book", work.alt_names)
        self.assertIn("William Shirer book", work.alt_names)

    def test_message_without_entities_records_empty_bucket(self) -> None:
        self.assertEqual(self.index.index_message(_message("m1", "nothing to see", "2024-01-01T10:00:00Z")), [])
        self.assertEqual(self.index.get_mentions_by_message("m1"), [])
        self.assertEqual(self.index.entities, {})

    def test_nested_owner_mention_is_ordered_before_its_work(self) -> None:
        mentions = self.index.index_message(
            _message("m1", "Richard J. Evans's book on the Third Reich", "2024-01-01T10:00:00Z")
        )

        self.assertEqual([m.surface for m in mentions[:2]], ["Evans", "Evans's book"])
        self.assertEqual(mentions[0].start, mentions[1].start)


class CooccurrenceEnrichmentTests(unittest.TestCase):
    def setUp(self) -> None:
        self.index = ConversationEntityIndex("conv-1", flush_interval=0)

    def _work_after_author(self, gap: int) -> CanonicalEntity:
        # Author at offset 0, work title starting exactly at ``gap``.
        text = f"William Shirer {'x' * (gap - 16)} The Berlin Diary Essay"
        self.assertEqual(text.index("The Berlin"), gap)
        self.index.index_message(_message("m1", text, "2024-01-01T10:00:00Z"))
        return self.index.get_canonical_entity(_entity_id_for(self.index, "The Berlin Diary Essay"))

    def test_author_named_before_title_adds_work_variants(self) -> None:
        self.index.index_message(
            _message("m1", "William Shirer wrote The Berlin Diary Essay last spring.", "2024-01-01T10:00:00Z")
        )

        work = self.index.get_canonical_entity(_entity_id_for(self.index, "The Berlin Diary Essay"))

        self.assertEqual(work.type, "work")
        self.assertIn("Shirer's work", work.alt_names)
        self.assertIn("William Shirer work", work.alt_names)
        self.assertIn("Shirer's book", work.alt_names)

    def test_author_at_distance_limit_is_linked(self) -> None:
        work = self._work_after_author(140)

        self.assertIn("Shirer's work", work.alt_names)
        self.assertIn("William Shirer work", work.alt_names)

    def test_author_beyond_distance_limit_is_ignored(self) -> None:
        work = self._work_after_author(141)

        self.assertNotIn("Shirer's work", work.alt_names)
        self.assertNotIn("William Shirer work", work.alt_names)


class ConcurrentIndexingTests(unittest.TestCase):
    def _run_threads(self, count: int, target) -> list[Exception]:
        barrier = threading.Barrier(count)
        errors: list[Exception] = []

        def worker(position: int) -> None:
            barrier.wait()
            try:
                target(position)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(position,)) for position in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return errors

    def test_same_message_from_many_threads_is_indexed_once(self) -> None:
        index = ConversationEntityIndex("conv-1", flush_interval=0)
        message = _message("m1", "Barack Obama met Angela Merkel. " * 40, "2024-01-01T10:00:00Z")
        results: dict[int, list] = {}

        errors = self._run_threads(8, lambda position: results.__setitem__(position, index.index_message(message)))

        self.assertEqual(errors, [])
        stored = index.get_mentions_by_message("m1")
        self.assertEqual(len(stored), 80)
        self.assertEqual(sum(len(bucket) for bucket in index.mentions_by_entity.values()), len(stored))
        for mentions in results.values():
            self.assertEqual(mentions, stored)

    def test_persisting_while_indexing_keeps_every_mention(self) -> None:
        cache = MemoryIndexCache()
        index = ConversationEntityIndex("conv-1", cache=cache, flush_interval=1)

        def index_and_flush(position: int) -> None:
            for step in range(5):
                index.index_message(
                    _message(f"m{position}-{step}", "Barack Obama met Angela Merkel.", f"2024-01-01T1{step}:00:00Z")
                )
                index.flush()

        errors = self._run_threads(6, index_and_flush)

        self.assertEqual(errors, [])
        self.assertEqual(len(index.mentions_by_message), 30)
        self.assertEqual(sum(len(bucket) for bucket in index.mentions_by_entity.values()), 60)
        restored = ConversationEntityIndex("conv-1", cache=cache)
        self.assertTrue(restored.hydrate())
        self.assertEqual(restored.to_payload(), index.to_payload())


class SnippetTests(unittest.TestCase):
    def test_snippet_is_bounded(self) -> None:
        text = "a" * 300 + "Target" + "b" * 300

        snippet = make_snippet(text, 300, 306)

        self.assertIn("Target", snippet)
        self.assertLessEqual(len(snippet), SNIPPET_MAX_LENGTH)
        self.assertEqual(make_snippet("short Target", 6, 12), "short Target")

    def test_long_window_is_truncated_with_ellipsis(self) -> None:
        text = "x" * 500

        snippet = make_snippet(text, 0, 400)

        self.assertEqual(len(snippet), SNIPPET_MAX_LENGTH - 2)
        self.assertTrue(snippet.endswith("…"))

    def test_created_at_key_orders_iso_timestamps(self) -> None:
        self.assertLess(created_at_key("2024-01-01T10:00:00Z"), created_at_key("2024-01-01T09:30:00-02:00"))
        self.assertLess(created_at_key("2024-01-01T10:00:00"), created_at_key("not a date"))

    def test_created_at_key_accepts_any_fraction_precision(self) -> None:
        short_fraction = created_at_key("2024-01-01T10:00:00.12Z")

        self.assertEqual(short_fraction[0], 0)
        self.assertLess(created_at_key("2024-01-01T10:00:00Z"), short_fraction)
        self.assertLess(short_fraction, created_at_key("2024-01-01T10:00:00.5+00:00"))
        self.assertLess(short_fraction, created_at_key("2024-01-01T10:00:01.000001Z"))

    def test_mixed_timestamp_formats_keep_creation_order(self) -> None:
        index = ConversationEntityIndex("conv-1", flush_interval=0)
        index.index_message(_message("b", "Barack Obama spoke.", "2024-01-01T10:00:00.25Z"))
        index.index_message(_message("a", "then Barack Obama left.", "2024-01-01T10:00:01+00:00"))
        entity_id = _entity_id_for(index, "Barack Obama")

        self.assertEqual([m.message_id for m in index.get_all_mentions(entity_id)], ["b", "a"])
        self.assertEqual(index.get_latest_prior_mention(entity_id, "a").message_id, "b")


class PriorMentionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.index = ConversationEntityIndex("conv-1", flush_interval=0)
        self.index.index_message(_message("z-1", "Barack Obama spoke.", "2024-01-01T10:00:00Z"))
        self.index.index_message(_message("a-2", "later Barack Obama wrote.", "2024-01-01T11:00:00Z"))
        self.index.index_message(_message("m-3", "then Barack Obama left.", "2024-01-01T12:00:00Z"))
        self.entity_id = _entity_id_for(self.index, "Barack Obama")

    def test_prior_uses_creation_time_not_message_id(self) -> None:
        self.assertEqual(self.index.get_latest_prior_mention(self.entity_id, "a-2").message_id, "z-1")
        self.assertEqual(self.index.get_latest_prior_mention(self.entity_id, "m-3").message_id, "a-2")

    def test_mentions_are_kept_in_creation_order(self) -> None:
        self.assertEqual(
            [m.message_id for m in self.index.get_all_mentions(self.entity_id)],
            ["z-1", "a-2", "m-3"],
        )

    def test_unknown_current_message_falls_back_to_id_order(self) -> None:
        self.assertEqual(self.index.get_latest_prior_mention(self.entity_id, "b-9").message_id, "a-2")

    def test_earliest_message_falls_back_to_later_ids(self) -> None:
        self.assertEqual(self.index.get_latest_prior_mention(self.entity_id, "z-1").message_id, "m-3")

    def test_unknown_entity_has_no_prior(self) -> None:
        self.assertIsNone(self.index.get_latest_prior_mention("ent-missing", "m-3"))


class KnownEntityMatchTests(unittest.TestCase):
    def test_known_names_and_aliases_are_found_left_to_right(self) -> None:
        index = ConversationEntityIndex("conv-1", flush_interval=0)
        index.index_message(_message("m1", "Barack Obama met Angela Merkel.", "2024-01-01T10:00:00Z"))
        obama = _entity_id_for(index, "Barack Obama")
        merkel = _entity_id_for(index, "Angela Merkel")

        rows = index.match_known_entities_in_text("merkel said Barack Obama and Obama's team agreed")

        self.assertEqual(
            rows,
            [
                (merkel, "merkel", 0, 6),
                (obama, "Barack Obama", 12, 24),
                (obama, "Obama's", 29, 36),
            ],
        )
        self.assertEqual(index.match_known_entities_in_text(""), [])

    def test_equal_length_names_prefer_higher_priority_type(self) -> None:
        index = ConversationEntityIndex("conv-1", flush_interval=0)
        index.add_entity(CanonicalEntity(id="ent-work", name="Dune", type="work"))
        index.add_entity(CanonicalEntity(id="ent-person", name="Dune", type="person"))

        self.assertEqual(index.match_known_entities_in_text("about Dune"), [("ent-person", "Dune", 6, 10)])


class PersistenceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cache = MemoryIndexCache()

    def _index(self, **kwargs) -> ConversationEntityIndex:
        return ConversationEntityIndex("conv-1", cache=self.cache, **kwargs)

    def test_flush_interval_persists_every_nth_index_call(self) -> None:
        index = self._index(flush_interval=2)

        index.index_message(_message("m1", "Barack Obama spoke.", "2024-01-01T10:00:00Z"))
        self.assertEqual(self.cache.blobs, {})
        index.index_message(_message("m2", "Angela Merkel replied.", "2024-01-01T11:00:00Z"))

        blob = self.cache.load("drift_conversation_entity_index:conv-1")
        self.assertIsNotNone(blob)
        payload = json.loads(blob)
        self.assertEqual(set(payload), {"entities", "mentionsByEntity", "mentionsByMessage"})

    def test_hydrate_restores_a_persisted_index(self) -> None:
        index = self._index(flush_interval=0)
        index.index_message(_message("m1", "Barack Obama met Angela Merkel.", "2024-01-01T10:00:00Z"))
        index.index_message(_message("m2", "then Angela Merkel thanked Barack Obama.", "2024-01-01T11:00:00Z"))
        self.assertTrue(index.persist())

        restored = self._index(flush_interval=0)
        self.assertTrue(restored.hydrate())

        self.assertEqual(restored.to_payload(), index.to_payload())
        obama = _entity_id_for(restored, "Barack Obama")
        self.assertEqual(restored.get_latest_prior_mention(obama, "m2").message_id, "m1")
        index.reset_state()
        self.assertTrue(index.hydrate())
        for entity_id in restored.entities:
            self.assertEqual(index.get_all_mentions(entity_id), restored.get_all_mentions(entity_id))

        reindexed = restored.index_message(_message("m1", "ignored", "2024-01-01T12:00:00Z"))
        self.assertEqual(reindexed, restored.get_mentions_by_message("m1"))
        self.assertEqual(len(restored.get_all_mentions(obama)), 2)

    def test_malformed_cache_leaves_an_empty_index(self) -> None:
        for blob in ("{not json", "[1, 2]", json.dumps({"entities": {"e": 5}})):
            self.cache.save("drift_conversation_entity_index:conv-1", blob)
            index = self._index()

            with self.assertLogs("drift.services.entity_index", level="ERROR"):
                self.assertFalse(index.hydrate())
            self.assertEqual(index.entities, {})
            self.assertEqual(index.mentions_by_message, {})

    def test_missing_cache_entry_is_not_an_error(self) -> None:
        self.assertFalse(self._index().hydrate())
        self.assertFalse(ConversationEntityIndex("conv-1").hydrate())
        self.assertFalse(ConversationEntityIndex("conv-1").persist())

    def test_clear_drops_state_and_cached_copy(self) -> None:
        index = self._index(flush_interval=1)
        index.index_message(_message("m1", "Barack Obama spoke.", "2024-01-01T10:00:00Z"))
        self.assertTrue(self.cache.blobs)

        index.clear()

        self.assertEqual(index.entities, {})
        self.assertEqual(index.get_mentions_by_message("m1"), [])
        self.assertEqual(self.cache.blobs, {})


if __name__ == "__main__":
    unittest.main()
