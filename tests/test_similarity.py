"""
test_similarity.py — Related-post search over stored embeddings.
"""

from datetime import datetime, timedelta, timezone

import pytest

from utils.similarity import SimilaritySearch, RelatedPost


class BrokenStore:
    def get_embedding(self, post_id):
        return [1.0, 0.0, 0.0]

    def query_nearest_by_vector(self, *args, **kwargs):
        raise RuntimeError("connection refused")


class UnavailableStore:
    def get_embedding(self, post_id):
        raise RuntimeError("connection refused")


class TestFindSimilarPosts:
    def test_orders_by_similarity_and_excludes_self(self, service, make_post):
        a = make_post(title="A", embedding=[1.0, 0.0, 0.0])
        far = make_post(title="Far", embedding=[0.0, 1.0, 0.0])
        near = make_post(title="Near", embedding=[0.9, 0.1, 0.0])

        related = service.find_similar_posts(a, "ko", 4)

        assert [r.id for r in related] == [near, far]
        assert related[0].similarity > related[1].similarity
        assert a not in [r.id for r in related]

    def test_similarity_is_one_minus_distance(self, service, make_post):
        a = make_post(embedding=[1.0, 0.0, 0.0])
        same = make_post(embedding=[2.0, 0.0, 0.0])
        orthogonal = make_post(embedding=[0.0, 0.0, 3.0])

        scores = {r.id: r.similarity for r in service.find_similar_posts(a, "ko", 4)}

        assert scores[same] == pytest.approx(1.0)
        assert scores[orthogonal] == pytest.approx(0.0)

    def test_returns_display_fields(self, service, make_post):
        a = make_post(embedding=[1.0, 0.0, 0.0])
        b = make_post(title="Neighbour", slug="neighbour", embedding=[1.0, 0.1, 0.0])

        (related,) = service.find_similar_posts(a, "ko", 4)

        assert isinstance(related, RelatedPost)
        assert related.to_dict()["id"] == b
        assert related.slug == "neighbour"
        assert related.title == "Neighbour"

    def test_locale_scoping(self, service, make_post):
        a = make_post(locale="ko", embedding=[1.0, 0.0, 0.0])
        b = make_post(locale="ko", embedding=[0.9, 0.1, 0.0])
        c = make_post(locale="en", embedding=[1.0, 0.0, 0.0])

        ids = [r.id for r in service.find_similar_posts(a, "ko", 4)]

        assert b in ids
        assert c not in ids

    def test_draft_never_returned(self, service, make_post):
        a = make_post(embedding=[1.0, 0.0, 0.0])
        draft = make_post(state="draft", embedding=[1.0, 0.0, 0.0])
        other = make_post(embedding=[0.0, 1.0, 0.0])

        ids = [r.id for r in service.find_similar_posts(a, "ko", 4)]

        assert draft not in ids
        assert ids == [other]

    def test_scheduled_posts_excluded(self, service, make_post):
        a = make_post(embedding=[1.0, 0.0, 0.0])
        future = make_post(
            embedding=[1.0, 0.0, 0.0],
            created_at=datetime.now(timezone.utc) + timedelta(days=2),
        )
        assert future not in [r.id for r in service.find_similar_posts(a, "ko", 4)]

    def test_candidates_without_embedding_excluded(self, service, make_post):
        a = make_post(embedding=[1.0, 0.0, 0.0])
        make_post(embedding=None)
        assert service.find_similar_posts(a, "ko", 4) == []

    def test_limit_caps_results(self, service, make_post):
        a = make_post(embedding=[1.0, 0.0, 0.0])
        for i in range(5):
            make_post(embedding=[1.0, float(i + 1), 0.0])

        assert len(service.find_similar_posts(a, "ko", 2)) == 2
        assert len(service.find_similar_posts(a, "ko", 10)) == 5
        assert service.find_similar_posts(a, "ko", 0) == []

    def test_draft_subject_may_ask_for_related(self, service, make_post):
        draft = make_post(state="draft", embedding=[1.0, 0.0, 0.0])
        b = make_post(embedding=[1.0, 0.0, 0.0])
        assert [r.id for r in service.find_similar_posts(draft, "ko", 4)] == [b]

    def test_equal_distances_break_ties_by_id(self, service, make_post):
        a = make_post(embedding=[1.0, 0.0, 0.0])
        first = make_post(embedding=[0.0, 1.0, 0.0])
        second = make_post(embedding=[0.0, 0.0, 1.0])
        assert [r.id for r in service.find_similar_posts(a, "ko", 4)] == [first, second]

    def test_subject_without_embedding(self, service, make_post):
        a = make_post(embedding=None)
        make_post(embedding=[1.0, 0.0, 0.0])
        assert service.find_similar_posts(a, "ko", 4) == []

    def test_missing_subject(self, service, make_post):
        make_post(embedding=[1.0, 0.0, 0.0])
        assert service.find_similar_posts(99999, "ko", 4) == []

    def test_defaults_from_config(self, service, make_post):
        a = make_post(embedding=[1.0, 0.0, 0.0])
        for _ in range(6):
            make_post(embedding=[1.0, 0.5, 0.0])
        assert len(service.find_similar_posts(a)) == 4


class TestGracefulDegradation:
    def test_query_failure_returns_empty(self):
        assert SimilaritySearch(BrokenStore()).find_similar_posts(1, "ko", 4) == []

    def test_lookup_failure_returns_empty(self):
        assert SimilaritySearch(UnavailableStore()).find_similar_posts(1, "ko", 4) == []

    def test_store_rows_for_subject_are_dropped(self):
        class SelfReturningStore:
            def get_embedding(self, post_id):
                return [1.0, 0.0, 0.0]

            def query_nearest_by_vector(self, exclude_id, locale, vector, limit):
                return [
                    {"id": 1, "slug": "self", "title": "Self", "distance": 0.0},
                    {"id": 2, "slug": "other", "title": "Other", "distance": 0.2},
                ]

        related = SimilaritySearch(SelfReturningStore()).find_similar_posts(1, "ko", 4)
        assert [r.id for r in related] == [2]
        assert related[0].similarity == pytest.approx(0.8)
