import numpy as np
import pytest

from sensible_models import (
    CdfSettings,
    InvalidArgument,
    MLESettings,
    ParameterModelSettings,
    SettingsStore,
    get_settings,
    models,
    options,
    set_parameters,
    settings_for,
)
from sensible_models.settings import BorrowedRng, OwnedRng, rng_handle


def test_adding_a_group_twice_replaces_and_frees_the_old_one():
    store = SettingsStore()
    first = store.add(ParameterModelSettings(draws=10))
    second = store.add(ParameterModelSettings(draws=20))

    assert len(store) == 1
    assert store.get(ParameterModelSettings) is second
    assert first.rng.released
    assert not second.rng.released


def test_lookup_by_name_or_class():
    store = SettingsStore()
    group = store.add(MLESettings(method="BFGS"))

    assert store.get("mle") is group
    assert store.get(MLESettings) is group
    assert MLESettings in store
    assert "cdf" not in store
    assert store.get(CdfSettings) is None
    assert list(store) == ["mle"]


def test_custom_copy_and_free_hooks():
    calls = []

    def copy_hook(group):
        calls.append("copy")
        return dict(group)

    def free_hook(group):
        calls.append("free")

    store = SettingsStore()
    store.add({"k": 1}, name="custom", copy=copy_hook, free=free_hook)
    dup = store.copy()

    assert dup.get("custom") == {"k": 1}
    assert dup.get("custom") is not store.get("custom")

    store.close()
    assert calls == ["copy", "free"]
    assert len(store) == 0
    assert len(dup) == 1


def test_remove_frees_the_entry():
    store = SettingsStore()
    group = store.add(CdfSettings())
    store.remove(CdfSettings)

    assert group.rng.released
    assert CdfSettings not in store


def test_groups_need_a_name():
    with pytest.raises(InvalidArgument):
        SettingsStore().add(object())


def test_settings_for_attaches_once():
    model = models.normal()
    assert get_settings(model, CdfSettings) is None

    group = settings_for(model, CdfSettings, draws=50)
    assert group.draws == 50
    assert settings_for(model, CdfSettings, draws=999) is group


def test_rng_handles_track_ownership():
    gen = np.random.default_rng(1)
    borrowed = rng_handle(gen)
    assert isinstance(borrowed, BorrowedRng)
    borrowed.release()
    assert borrowed.generator is gen

    owned = rng_handle(7)
    assert isinstance(owned, OwnedRng)
    assert rng_handle(owned) is owned
    owned.release()
    with pytest.raises(InvalidArgument):
        owned.generator

    with pytest.raises(InvalidArgument):
        rng_handle("seed")


def test_owned_streams_come_from_the_global_seed_counter(monkeypatch):
    monkeypatch.setattr(options, "rng_seed", 123)
    a = OwnedRng()
    b = OwnedRng()

    assert options.rng_seed == 125
    assert a.generator.integers(1 << 30) == np.random.default_rng(123).integers(1 << 30)
    assert b.generator.integers(1 << 30) == np.random.default_rng(124).integers(1 << 30)


def test_copied_group_gets_a_fresh_stream():
    group = ParameterModelSettings(rng=np.random.default_rng(3), index=-1)
    dup = group.copy()

    assert dup.index == -1
    assert isinstance(dup.rng, OwnedRng)
    assert dup.rng.generator is not group.rng.generator


def test_cdf_settings_own_their_sub_model():
    sub = set_parameters(models.normal(), 0.0, 1.0)
    group = CdfSettings(cdf_model=sub)
    dup = group.copy()

    assert dup.cdf_model is not sub
    np.testing.assert_allclose(dup.cdf_model.parameters.vector, [0.0, 1.0])

    group.close()
    assert sub.parameters is None
    assert dup.cdf_model.parameters is not None
