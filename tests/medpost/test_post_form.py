"""Tests for PostForm submit lifecycle."""

from __future__ import annotations

import asyncio

import pytest

from medpost.errors import PersistenceError, SubmissionInProgressError
from medpost.models.identity import Identity
from medpost.models.post import DraftPost, Post, SelectedAsset
from medpost.pipeline import SUCCESS_MESSAGE, PostForm, SubmissionPipeline
from medpost.uploader import AssetUploader
from tests.medpost.mocks import MockObjectStore, MockPostStore


def _form(
    identity: Identity, storage: MockObjectStore, posts: MockPostStore
) -> PostForm:
    pipeline = SubmissionPipeline(AssetUploader(storage), posts, storage)
    return PostForm(pipeline, identity, success_redirect="/doctors/all-post")


def _fill(form: PostForm) -> None:
    form.update(title="Clinic hours", content="Open Sunday", location="Ward 3")


@pytest.mark.asyncio
async def test_successful_submit_clears_draft_and_sets_redirect(
    doctor: Identity,
    asset: SelectedAsset,
    object_store: MockObjectStore,
    post_store: MockPostStore,
) -> None:
    # Given: A filled-in form with an image
    form = _form(doctor, object_store, post_store)
    _fill(form)
    form.select_asset(asset)

    # When: Submitting
    result = await form.submit()

    # Then: The post is created and the form resets
    assert isinstance(result, Post)
    assert form.success_message == SUCCESS_MESSAGE
    assert form.error_message is None
    assert form.redirect_to == "/doctors/all-post"
    assert form.draft == DraftPost()
    assert form.submitting is False


@pytest.mark.asyncio
async def test_failed_submit_keeps_draft_and_reports_cause(
    doctor: Identity, object_store: MockObjectStore
) -> None:
    form = _form(doctor, object_store, MockPostStore(simulate_failure=True))
    _fill(form)
    before = form.draft.model_copy()

    result = await form.submit()

    assert isinstance(result, PersistenceError)
    assert form.error_message == "insert violates row-level security policy"
    assert form.success_message is None
    assert form.redirect_to is None
    assert form.draft == before
    assert form.submit_disabled is False


@pytest.mark.asyncio
async def test_validation_failure_message(
    doctor: Identity, object_store: MockObjectStore, post_store: MockPostStore
) -> None:
    form = _form(doctor, object_store, post_store)
    form.update(title="Only a title")

    await form.submit()

    assert form.error_message == "Title, content, and location are required."
    assert post_store.insert_count == 0


@pytest.mark.asyncio
async def test_second_submit_while_in_flight_is_rejected(
    doctor: Identity, object_store: MockObjectStore
) -> None:
    # Given: A slow post store
    posts = MockPostStore(delay_s=0.05)
    form = _form(doctor, object_store, posts)
    _fill(form)

    # When: Submitting twice without waiting for the first
    first = asyncio.create_task(form.submit())
    await asyncio.sleep(0)
    assert form.submit_disabled is True
    second = await form.submit()
    first_result = await first

    # Then: Only one insert happened
    assert isinstance(second, SubmissionInProgressError)
    assert isinstance(first_result, Post)
    assert posts.insert_count == 1
    assert form.submit_disabled is False


@pytest.mark.asyncio
async def test_error_cleared_on_next_submit(
    doctor: Identity, object_store: MockObjectStore, post_store: MockPostStore
) -> None:
    form = _form(doctor, object_store, post_store)
    await form.submit()
    assert form.error_message is not None

    _fill(form)
    await form.submit()

    assert form.error_message is None
    assert form.success_message == SUCCESS_MESSAGE
