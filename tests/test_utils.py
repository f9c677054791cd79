"""
test_utils.py — Unit tests for utility functions.
"""

import pytest

from utils.validation import validate_post_data, parse_id, parse_page_args, ValidationError


class TestValidatePostData:
    def _valid(self, **overrides):
        data = {"title": "T", "content": "C", "summary": "S", "state": "draft"}
        data.update(overrides)
        return data

    def test_valid_payload(self):
        assert validate_post_data(self._valid()) == []

    def test_missing_fields(self):
        errors = validate_post_data({"state": "published"})
        assert "Title is required" in errors
        assert "Content is required" in errors
        assert "Summary is required" in errors

    def test_blank_title(self):
        assert "Title is required" in validate_post_data(self._valid(title="   "))

    def test_bad_state(self):
        assert validate_post_data(self._valid(state="archived")) == ['State must be "draft" or "published"']

    def test_slug_required_on_create(self):
        assert "Slug is required" in validate_post_data(self._valid(), require_slug=True)
        assert validate_post_data(self._valid(slug="hello-world"), require_slug=True) == []

    @pytest.mark.parametrize("slug", ["Hello", "a b", "trailing-", "--"])
    def test_bad_slug(self, slug):
        errors = validate_post_data(self._valid(slug=slug))
        assert any(e.startswith("Slug must") for e in errors)

    def test_bad_locale(self):
        assert validate_post_data(self._valid(locale="x")) == ["Locale must be a 2-5 character code"]
        assert validate_post_data(self._valid(locale="en-US")) == []


class TestParsers:
    def test_parse_id(self):
        assert parse_id("42") == 42
        assert parse_id("abc") is None
        assert parse_id(None) is None

    def test_page_defaults(self):
        assert parse_page_args({}) == (0, 10)

    def test_page_clamping(self):
        assert parse_page_args({"page": "-3", "size": "500"}) == (0, 100)
        assert parse_page_args({"size": "0"}) == (0, 1)

    def test_page_not_integer(self):
        with pytest.raises(ValidationError):
            parse_page_args({"page": "first"})


class TestResponseUtils:
    def test_success_envelope(self, app):
        from utils.response import success
        with app.test_request_context():
            resp, status = success(data={"foo": "bar"})
            assert status == 200
            assert resp.get_json() == {"success": True, "data": {"foo": "bar"}, "error": None}

    def test_error_envelope(self, app):
        from utils.response import not_found
        with app.test_request_context():
            resp, status = not_found("Post")
            assert status == 404
            assert resp.get_json() == {
                "success": False,
                "data": None,
                "error": {"code": 404, "message": "Post not found"},
            }

    def test_paginated(self, app):
        from utils.response import paginated
        with app.test_request_context():
            resp, _ = paginated([1, 2], total=7, page=1, size=2)
            assert resp.get_json()["data"] == {
                "content": [1, 2], "totalElements": 7, "pageNumber": 1, "pageSize": 2,
            }


class TestInitDb:
    def test_creates_tables_without_pgvector(self):
        from flask import Flask
        from sqlalchemy import inspect
        from database import db, init_db
        import models  # noqa: F401

        app = Flask(__name__)
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        app.config["EMBEDDING_DIMENSIONS"] = 3

        init_db(app)

        with app.app_context():
            assert "posts" in inspect(db.engine).get_table_names()
