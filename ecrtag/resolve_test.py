import pytest

from ecrtag.errors import MalformedRepositoryName, ParameterNotFound, ParameterStoreError
from ecrtag.resolve import BatchTagResolver, TagResolver, parameter_name
from ecrtag.testing import REGISTRY, FakeStore


def test_parameter_name():
    assert parameter_name("test2-frontend") == "/test2/frontend/ecr_tag"


def test_parameter_name_splits_on_first_separator():
    assert parameter_name("shop-cart-api") == "/shop/cart-api/ecr_tag"


def test_parameter_name_template():
    assert parameter_name("shop-cart", "/tags/{project}/{component}") == "/tags/shop/cart"


@pytest.mark.parametrize("repository", ["standalone", "-frontend", "shop-"])
def test_malformed_repository(repository):
    with pytest.raises(MalformedRepositoryName):
        parameter_name(repository)


def test_resolve(store):
    resolved = TagResolver(store).resolve("test2-frontend:notlatest", REGISTRY)
    assert resolved.original_repository == "test2-frontend"
    assert resolved.resolved_tag == "bec0e8f"
    assert resolved.full_reference == f"{REGISTRY}/test2-frontend:bec0e8f"


def test_resolve_digest(store):
    resolved = TagResolver(store).resolve("test2-frontend@sha256:abc")
    assert resolved.full_reference == "test2-frontend:bec0e8f"


def test_malformed_repository_skips_store(store):
    with pytest.raises(MalformedRepositoryName):
        TagResolver(store).resolve("standalone:1")
    assert store.calls == []


def test_parameter_not_found(store):
    with pytest.raises(ParameterNotFound) as err:
        TagResolver(store).resolve("shop-cart:1")
    assert "/shop/cart/ecr_tag" in str(err.value)


def test_parameter_store_error_is_kept_verbatim():
    store = FakeStore(errors={"/shop/cart/ecr_tag": "ThrottlingException: Rate exceeded"})
    with pytest.raises(ParameterStoreError) as err:
        TagResolver(store).resolve("shop-cart:1")
    assert str(err.value) == "ThrottlingException: Rate exceeded"


def test_batch_resolves_in_order():
    store = FakeStore(parameters={"/shop/cart/ecr_tag": "c1", "/shop/web/ecr_tag": "w1"})
    resolved = BatchTagResolver(TagResolver(store)).resolve(REGISTRY, ["shop-web:0", "shop-cart:0"])
    assert [r.full_reference for r in resolved] == [
        f"{REGISTRY}/shop-web:w1",
        f"{REGISTRY}/shop-cart:c1",
    ]


def test_batch_fails_fast():
    store = FakeStore(parameters={"/shop/cart/ecr_tag": "c1"})
    with pytest.raises(ParameterNotFound):
        BatchTagResolver(TagResolver(store)).resolve(REGISTRY, ["shop-cart:0", "shop-web:0"])


@pytest.mark.parametrize("template", ["/{project}/{env}/ecr_tag", "/{0}/ecr_tag", "/{project"])
def test_invalid_template(store, template):
    with pytest.raises(ValueError):
        TagResolver(store, template)
