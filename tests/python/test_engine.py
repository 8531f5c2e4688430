from __future__ import annotations

import pytest
from conftest import make_organism, make_state, quiet_config

from cellife.sim.core.engine import update_simulation
from cellife.sim.core.grid import copy_grid, count_cells
from cellife.sim.core.organism import CellType, Direction, OrganismCell, Position
from cellife.sim.core.rng import DeterministicRng
from cellife.sim.systems.placement import occupied_footprint


def test_organism_dies_when_age_exceeds_lifespan_and_becomes_food():
    config = quiet_config(10, 10, lifespan_multiplier=10)
    state = make_state(10, 10, [make_organism(1, 5, 5)])
    rng = DeterministicRng(5)

    for _ in range(20):
        state = update_simulation(state, config, rng)
    assert len(state.organisms) == 1
    assert state.organisms[0].age == 20
    last_footprint = occupied_footprint(state.organisms[0])

    state = update_simulation(state, config, rng)
    assert state.organisms == []
    assert state.tick == 21
    for pos in last_footprint:
        assert state.grid[pos.y][pos.x] is CellType.FOOD
    assert count_cells(state.grid, CellType.FOOD) == len(last_footprint)


def test_step_leaves_input_state_untouched():
    config = quiet_config(12, 12, food_spawn_rate=0.05)
    state = make_state(12, 12, [make_organism(1, 3, 3, energy=1), make_organism(2, 7, 7)])
    state.grid[3][2] = CellType.FOOD
    grid_before = copy_grid(state.grid)
    organisms_before = [org.clone() for org in state.organisms]

    result = update_simulation(state, config, DeterministicRng(9))

    assert state.grid == grid_before
    assert state.organisms == organisms_before
    assert state.tick == 0
    assert result is not state
    assert all(a is not b for a, b in zip(result.organisms, state.organisms))


def test_same_seed_same_input_gives_identical_output():
    config = quiet_config(20, 20, food_spawn_rate=0.01, producer_food_chance=0.5, mutation_rate=0.8)
    state = make_state(
        20,
        20,
        [
            make_organism(1, 4, 4, energy=2),
            make_organism(2, 12, 12, cells=[(CellType.PRODUCER, 0, 0), (CellType.MOUTH, 1, 0)]),
        ],
    )
    first = update_simulation(state, config, DeterministicRng(77))
    second = update_simulation(state, config, DeterministicRng(77))
    assert first == second


def test_mouth_eats_first_food_in_left_right_up_down_order():
    config = quiet_config(10, 10)
    org = make_organism(1, 5, 5, cells=[(CellType.MOUTH, 0, 0), (CellType.KILLER, 0, 1)])
    state = make_state(10, 10, [org])
    state.grid[5][6] = CellType.FOOD  # right
    state.grid[4][5] = CellType.FOOD  # up

    result = update_simulation(state, config, DeterministicRng(1))

    assert result.grid[5][6] is CellType.EMPTY
    assert result.grid[4][5] is CellType.FOOD
    assert result.organisms[0].energy == 1


def test_each_mouth_eats_at_most_once_per_tick():
    config = quiet_config(10, 10)
    org = make_organism(1, 5, 5, cells=[(CellType.MOUTH, 0, 0), (CellType.KILLER, 0, 1), (CellType.KILLER, 1, 1)])
    state = make_state(10, 10, [org])
    for x, y in [(4, 5), (6, 5), (5, 4)]:
        state.grid[y][x] = CellType.FOOD

    result = update_simulation(state, config, DeterministicRng(1))

    assert result.organisms[0].energy == 1
    assert count_cells(result.grid, CellType.FOOD) == 2


def test_producer_places_food_on_an_empty_neighbour():
    config = quiet_config(10, 10, producer_food_chance=1.0)
    org = make_organism(1, 5, 5, cells=[(CellType.PRODUCER, 0, 0), (CellType.KILLER, 0, 1)])
    state = make_state(10, 10, [org])

    result = update_simulation(state, config, DeterministicRng(3))

    neighbours = [(4, 5), (6, 5), (5, 4), (5, 6)]
    assert count_cells(result.grid, CellType.FOOD) == 1
    assert sum(1 for x, y in neighbours if result.grid[y][x] is CellType.FOOD) == 1


def test_organism_without_mover_stays_put():
    config = quiet_config(10, 10)
    org = make_organism(1, 5, 5, cells=[(CellType.MOUTH, 0, 0), (CellType.KILLER, 1, 0)], move_counter=1)
    state = make_state(10, 10, [org])

    result = update_simulation(state, config, DeterministicRng(2))

    assert result.organisms[0].position == Position(5, 5)
    assert result.organisms[0].move_counter == 1


def test_mover_steps_one_cell_in_its_direction():
    config = quiet_config(10, 10)
    state = make_state(10, 10, [make_organism(1, 4, 4, direction=Direction.DOWN, move_counter=10)])

    result = update_simulation(state, config, DeterministicRng(2))

    assert result.organisms[0].position == Position(4, 5)
    assert result.organisms[0].move_counter == 9


def test_blocked_mover_stays_and_counter_resets_when_exhausted():
    config = quiet_config(10, 10)
    org = make_organism(1, 8, 4, direction=Direction.RIGHT, move_counter=10)
    state = make_state(10, 10, [org])

    result = update_simulation(state, config, DeterministicRng(4))
    assert result.organisms[0].position == Position(8, 4)

    tired = make_organism(1, 4, 4, move_counter=1)
    result = update_simulation(make_state(10, 10, [tired]), config, DeterministicRng(4))
    assert 5 <= result.organisms[0].move_counter <= 15


def test_wall_blocks_movement():
    config = quiet_config(10, 10)
    state = make_state(10, 10, [make_organism(1, 4, 4, direction=Direction.RIGHT, move_counter=10)])
    state.grid[4][6] = CellType.WALL

    result = update_simulation(state, config, DeterministicRng(4))

    assert result.organisms[0].position == Position(4, 4)


def test_reproduction_places_child_and_resets_energy():
    config = quiet_config(30, 30, mutation_rate=0.0, max_organisms=10)
    parent = make_organism(1, 15, 15, energy=5, cells=[(CellType.MOUTH, 0, 0), (CellType.KILLER, 1, 0)])
    state = make_state(30, 30, [parent])

    result = update_simulation(state, config, DeterministicRng(11))

    assert len(result.organisms) == 2
    new_parent, child = result.organisms
    assert new_parent.energy == 0
    assert child.id == 2
    assert child.energy == 0 and child.age == 0
    assert child.cells == new_parent.cells
    assert child.cells is not new_parent.cells
    offset = (child.position.x - 15, child.position.y - 15)
    assert offset in {(4, 0), (-4, 0), (0, 4), (0, -4)}
    assert result.generation == state.generation + 1
    assert result.next_organism_id == 3


def test_failed_child_placement_still_spends_energy():
    config = quiet_config(2, 1, mutation_rate=0.0)
    parent = make_organism(1, 0, 0, energy=2)
    state = make_state(2, 1, [parent])

    result = update_simulation(state, config, DeterministicRng(6))

    assert len(result.organisms) == 1
    assert result.organisms[0].energy == 0
    assert result.organisms[0].position == Position(0, 0)
    assert result.generation == state.generation
    assert result.next_organism_id == state.next_organism_id + 1


def test_population_cap_of_one_never_adds_a_second_organism():
    config = quiet_config(30, 30, max_organisms=1, lifespan_multiplier=50)
    state = make_state(30, 30, [make_organism(1, 15, 15, energy=10)])
    rng = DeterministicRng(8)
    for _ in range(30):
        state = update_simulation(state, config, rng)
        assert len(state.organisms) <= 1
    assert state.generation == 1


def test_food_spawns_every_tick_when_rate_times_area_reaches_one():
    config = quiet_config(1, 1, food_spawn_rate=1.0)
    result = update_simulation(make_state(1, 1), config, DeterministicRng(0))
    assert result.grid[0][0] is CellType.FOOD


def test_food_spawn_never_overwrites_walls():
    config = quiet_config(1, 1, food_spawn_rate=1.0)
    state = make_state(1, 1)
    state.grid[0][0] = CellType.WALL
    result = update_simulation(state, config, DeterministicRng(0))
    assert result.grid[0][0] is CellType.WALL


def test_tick_advances_and_generation_only_on_births():
    config = quiet_config(10, 10)
    state = make_state(10, 10)
    result = update_simulation(state, config, DeterministicRng(0))
    assert result.tick == 1
    assert result.generation == 1


@pytest.mark.parametrize(
    "cells",
    [
        [(CellType.MOUTH, 0, 0), (CellType.MOVER, 0, 0)],
        [],
    ],
)
def test_broken_organisms_fail_fast(cells):
    config = quiet_config(10, 10)
    org = make_organism(1, 5, 5)
    org.cells = [OrganismCell(t, Position(x, y)) for t, x, y in cells]
    with pytest.raises(ValueError):
        update_simulation(make_state(10, 10, [org]), config, DeterministicRng(0))


def test_oversized_organism_fails_fast():
    config = quiet_config(40, 40)
    org = make_organism(1, 5, 5, cells=[(CellType.PRODUCER, x, 0) for x in range(21)])
    with pytest.raises(ValueError):
        update_simulation(make_state(40, 40, [org]), config, DeterministicRng(0))


def test_grid_and_config_mismatch_fail_fast():
    state = make_state(10, 10)
    with pytest.raises(ValueError):
        update_simulation(state, quiet_config(12, 10), DeterministicRng(0))

    state.grid.pop()
    with pytest.raises(ValueError):
        update_simulation(state, quiet_config(10, 10), DeterministicRng(0))


def test_organism_cells_are_never_written_to_the_grid():
    state = make_state(10, 10)
    state.grid[2][2] = CellType.MOUTH
    with pytest.raises(ValueError):
        update_simulation(state, quiet_config(10, 10), DeterministicRng(0))


def _mover(organism_id, x, y, direction):
    return make_organism(
        organism_id,
        x,
        y,
        cells=[(CellType.MOVER, 0, 0), (CellType.KILLER, 1, 0)],
        direction=direction,
        move_counter=10,
    )


def test_later_organism_sees_earlier_move_in_same_tick():
    config = quiet_config(10, 10)
    # First steps right onto (5,5); second wants (5,5) from below.
    first = _mover(1, 3, 5, Direction.RIGHT)
    second = _mover(2, 5, 6, Direction.UP)

    result = update_simulation(make_state(10, 10, [first, second]), config, DeterministicRng(1))
    assert result.organisms[0].position == Position(4, 5)
    assert result.organisms[1].position == Position(5, 6)

    # Reversed order: the upward mover claims the cells first.
    first = _mover(1, 3, 5, Direction.RIGHT)
    second = _mover(2, 5, 6, Direction.UP)
    result = update_simulation(make_state(10, 10, [second, first]), config, DeterministicRng(1))
    moved_up, blocked = result.organisms
    assert moved_up.position == Position(5, 5)
    assert blocked.position == Position(3, 5)


def test_organism_dying_this_tick_still_blocks_until_tick_ends():
    config = quiet_config(10, 10, lifespan_multiplier=10)
    dying = make_organism(1, 5, 5, cells=[(CellType.KILLER, 0, 0), (CellType.KILLER, 1, 0)], age=20)
    mover = _mover(2, 5, 6, Direction.UP)

    result = update_simulation(make_state(10, 10, [dying, mover]), config, DeterministicRng(2))

    assert [org.id for org in result.organisms] == [2]
    assert result.organisms[0].position == Position(5, 6)
    assert result.grid[5][5] is CellType.FOOD
    assert result.grid[5][6] is CellType.FOOD


def test_offspring_born_this_tick_block_later_moves():
    # One-row world: a child fits only to the parent's right, at (4,0)-(5,0).
    config = quiet_config(8, 1, mutation_rate=0.0)
    births = 0
    for seed in range(64):
        parent = make_organism(1, 0, 0, cells=[(CellType.MOUTH, 0, 0), (CellType.KILLER, 1, 0)], energy=2)
        mover = _mover(2, 6, 0, Direction.LEFT)
        result = update_simulation(make_state(8, 1, [parent, mover]), config, DeterministicRng(seed))

        moved = result.organisms[1]
        if len(result.organisms) == 3:
            births += 1
            assert result.organisms[2].position == Position(4, 0)
            assert moved.position == Position(6, 0)
        else:
            assert moved.position == Position(5, 0)
    assert births > 0
