import pytest

from gardn.entitydef import (
    NULL_ENTITY,
    AppliedPoison,
    EntityId,
    LoadoutSlot,
    MobAiState,
    PoisonDefinition,
    ai_state_is_passive,
)
from gardn.staticdata import PetalId


def test_null_entity():
    assert NULL_ENTITY.is_null()
    assert not EntityId(1, 0).is_null()
    assert EntityId(0, 7).is_null()


def test_ordering_prefers_hash():
    assert EntityId(5, 0) < EntityId(1, 1)
    assert not EntityId(1, 1) < EntityId(5, 0)
    assert EntityId(2, 3) > EntityId(1, 3)
    ids = [EntityId(3, 1), EntityId(9, 0), EntityId(1, 1)]
    assert sorted(ids) == [EntityId(9, 0), EntityId(1, 1), EntityId(3, 1)]


def test_equality_and_hashing():
    a = EntityId(4, 2)
    assert a == EntityId(4, 2)
    assert a != EntityId(4, 3)
    assert {a, EntityId(4, 2), EntityId(5, 2)} == {EntityId(4, 2), EntityId(5, 2)}


@pytest.mark.parametrize(
    "state, passive",
    [
        (MobAiState.IDLE, True),
        (MobAiState.IDLE_MOVING, True),
        (MobAiState.IDLE_MOVING_2, True),
        (MobAiState.RETURNING, True),
        (MobAiState.AGGRO, False),
        (MobAiState.FIRING, False),
    ],
)
def test_ai_state_is_passive(state, passive):
    assert ai_state_is_passive(state) is passive


def test_poison_definition():
    poison = PoisonDefinition()
    assert not poison.has()
    poison.define(2.5, 10)
    assert poison.has()
    assert (poison.damage, poison.ticks) == (2.5, 10)
    poison.define(0, 0)
    assert not poison.has()


def test_applied_poison_reset_keeps_dealer():
    dealer = EntityId(3, 1)
    applied = AppliedPoison(dealer=dealer, damage=1.5, ticks_left=20)
    applied.reset()
    assert applied.damage == 0
    assert applied.ticks_left == 0
    assert applied.dealer == dealer


def test_loadout_slot_defaults():
    slot = LoadoutSlot()
    assert slot.id == PetalId.NONE
    assert len(slot.petals) == 5
    assert all(p.ent_id == NULL_ENTITY and p.reload == 0 for p in slot.petals)


def test_loadout_slots_do_not_share_petals():
    a = LoadoutSlot()
    b = LoadoutSlot()
    a.petals[0].reload = 9
    assert b.petals[0].reload == 0


def test_loadout_slot_reset():
    slot = LoadoutSlot(id=PetalId.ROSE)
    for p in slot.petals:
        p.reload = 4
        p.ent_id = EntityId(2, 2)
    slot.reset()
    assert slot.id == PetalId.NONE
    assert all(p.reload == 0 and p.ent_id == NULL_ENTITY for p in slot.petals[:3])