#!/usr/bin/env python3
"""
Seed script to generate a large construction schedule for performance testing.

Generates a layered site plan:
- One parent task per phase (foundation, framing, ...)
- Work packages inside each phase as subtasks
- FS/SS dependencies from earlier waves, always pointing forward

Usage:
    python -m scripts.seed [--nodes 500] [--clear]

Options:
    --nodes N    Number of tasks to generate (default: 500)
    --clear      Clear existing data before seeding
    --project    Name of the project to create
    --benchmark  Time a full schedule computation and one edge proposal
"""

import argparse
import asyncio
import random
import time
from datetime import date, timedelta
from typing import List, Tuple
import uuid

from sqlalchemy import text

from trestle.database import async_session_maker, get_session_context, init_db
from trestle.domain import DependencyType, TaskPriority
from trestle.exceptions import TrestleException
from trestle.models import Project, Task, Dependency
from trestle.services.scheduler import ScheduleMutationService
from trestle.store import SqlTaskStore

PHASES = [
    "Site Preparation",
    "Foundation",
    "Framing",
    "Roofing",
    "Plumbing",
    "Electrical",
    "Insulation",
    "Drywall",
    "Finishes",
    "Landscaping",
]


async def clear_data():
    """Clear all existing data."""
    print("Clearing existing data...")
    async with get_session_context() as session:
        await session.execute(text("DELETE FROM dependencies"))
        await session.execute(text("UPDATE tasks SET parent_id = NULL"))
        await session.execute(text("DELETE FROM tasks"))
        await session.execute(text("DELETE FROM projects"))
    print("Data cleared.")


async def create_project(name: str) -> Project:
    """Create a project for the tasks."""
    async with get_session_context() as session:
        project = Project(name=name, description="Performance test site")
        session.add(project)
        await session.flush()
        await session.refresh(project)
    return project


def generate_site(
    project_id: uuid.UUID,
    num_nodes: int = 500,
) -> Tuple[List[Task], List[Task], List[Dependency]]:
    """
    Generate phases (parents), work packages (subtasks) and dependencies.

    Work packages in wave N only depend on packages from waves N-3..N-1, so
    the result is acyclic by construction.

    Returns:
        Tuple of (phase tasks, work package tasks, dependencies)
    """
    phases = []
    packages = []
    dependencies = []
    seen = set()

    num_waves = len(PHASES)
    per_wave = max(1, num_nodes // num_waves)
    site_start = date(2025, 1, 1)

    print(f"Generating {num_nodes} work packages in {num_waves} phases...")

    by_wave: List[List[Task]] = []
    for wave, phase_name in enumerate(PHASES):
        phase_start = site_start + timedelta(days=wave * 14)
        phase = Task(
            name=phase_name,
            start_date=phase_start,
            due_date=phase_start + timedelta(days=21),
            project_id=project_id,
        )
        phases.append(phase)

        size = per_wave if wave < num_waves - 1 else num_nodes - len(packages)
        wave_tasks = []
        for i in range(size):
            start = phase_start + timedelta(days=random.randint(0, 7))
            task = Task(
                name=f"{phase_name} #{i:03d}",
                description=f"Wave {wave}, package {i}",
                start_date=start,
                due_date=start + timedelta(days=random.randint(1, 10)),
                priority=random.choice(list(TaskPriority)),
                project_id=project_id,
                parent_id=phase.id,
            )
            packages.append(task)
            wave_tasks.append(task)
        by_wave.append(wave_tasks)

        if wave == 0:
            continue
        for task in wave_tasks:
            # Each package depends on 1-3 packages from recent waves
            for _ in range(random.randint(1, 3)):
                source_wave = random.choice(range(max(0, wave - 3), wave))
                if not by_wave[source_wave]:
                    continue
                predecessor = random.choice(by_wave[source_wave])
                dependency_type = random.choice(
                    [DependencyType.FINISH_TO_START] * 4 + [DependencyType.START_TO_START]
                )
                key = (predecessor.id, task.id, dependency_type)
                if key in seen:
                    continue
                seen.add(key)
                dependencies.append(Dependency(
                    predecessor_id=predecessor.id,
                    successor_id=task.id,
                    dependency_type=dependency_type,
                    lag_days=random.choice([0, 0, 0, 1, 2]),
                ))

    return phases, packages, dependencies


async def insert_batch(phases: List[Task], packages: List[Task], dependencies: List[Dependency]):
    """Insert rows in batches for performance."""
    async with get_session_context() as session:
        batch_size = 100

        session.add_all(phases)
        await session.flush()

        print(f"Inserting {len(packages)} work packages...")
        for i in range(0, len(packages), batch_size):
            session.add_all(packages[i:i + batch_size])
            await session.flush()

        print(f"Inserting {len(dependencies)} dependencies...")
        for i in range(0, len(dependencies), batch_size):
            session.add_all(dependencies[i:i + batch_size])
            await session.flush()


async def run_benchmark(project_id: uuid.UUID, packages: List[Task]):
    """Time a full schedule computation and one rejected backward edge."""
    service = ScheduleMutationService(SqlTaskStore(async_session_maker))

    start_time = time.time()
    snapshot = await service.get_schedule(project_id)
    print(f"\n=== Benchmark ===")
    print(f"Schedule computation: {(time.time() - start_time) * 1000:.2f}ms")
    print(f"Project window: {snapshot.project_start} -> {snapshot.project_finish}")
    print(f"Critical tasks: {len(snapshot.critical_task_ids)} / {len(snapshot.entries)}")
    print(f"Critical chain length: {len(snapshot.critical_path)}")

    # An edge from the last wave back to the first is very likely to close a cycle
    start_time = time.time()
    try:
        await service.propose_edge(project_id, packages[-1].id, packages[0].id)
        print("Backward edge accepted (no path between the packages)")
    except TrestleException as exc:
        print(f"Backward edge rejected: {exc.error_code}")
    print(f"Edge proposal: {(time.time() - start_time) * 1000:.2f}ms")


async def main():
    parser = argparse.ArgumentParser(description="Seed the database with a large construction schedule")
    parser.add_argument("--nodes", type=int, default=500, help="Number of work packages to create")
    parser.add_argument("--clear", action="store_true", help="Clear existing data first")
    parser.add_argument("--project", type=str, default="Performance Test Site", help="Project name")
    parser.add_argument("--benchmark", action="store_true", help="Run benchmark after seeding")

    args = parser.parse_args()

    print(f"=== Trestle Seed Script ===")

    await init_db()

    if args.clear:
        await clear_data()

    project = await create_project(args.project)
    print(f"Created project: {project.name} ({project.id})")

    start_time = time.time()
    phases, packages, dependencies = generate_site(project.id, args.nodes)
    print(f"Generation time: {time.time() - start_time:.2f}s")

    start_time = time.time()
    await insert_batch(phases, packages, dependencies)
    print(f"Insert time: {time.time() - start_time:.2f}s")

    print(f"\n=== Site Statistics ===")
    print(f"Phases:        {len(phases)}")
    print(f"Work packages: {len(packages)}")
    print(f"Dependencies:  {len(dependencies)}")

    if args.benchmark and packages:
        await run_benchmark(project.id, packages)

    print(f"\n=== Seeding Complete ===")
    print(f"Project ID: {project.id}")


if __name__ == "__main__":
    asyncio.run(main())
