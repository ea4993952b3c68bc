from uuid import uuid4

from storefinder.schemas import DEFAULT_PHOTO, RAW_PHOTO, RatedStore, StoreSummary

from tests.factories import make_store


def test_missing_photo_renders_default():
    store = make_store("No Photo")

    assert store.photo is None
    assert store.model_dump()["photo"] is None
    assert store.model_dump(mode="json")["photo"] == DEFAULT_PHOTO
    assert store.model_dump(mode="json", context=RAW_PHOTO)["photo"] is None


def test_uploaded_photo_is_kept():
    store = make_store("With Photo").model_copy(update={"photo": f"{uuid4()}.png"})
    assert store.model_dump(mode="json")["photo"] == store.photo


def test_summary_and_nested_store_render_default():
    summary = StoreSummary(slug="a", name="A")
    assert summary.model_dump(mode="json")["photo"] == DEFAULT_PHOTO

    rated = RatedStore(store=make_store("A"), average_rating=4.0, review_count=1)
    assert rated.model_dump(mode="json", by_alias=True)["store"]["photo"] == DEFAULT_PHOTO
