#!/usr/bin/env python3
"""
Seed script to generate a task graph for manual testing and benchmarking.

Generates a random DAG in "waves": every task depends only on tasks from
earlier waves, so the result is always acyclic. Roughly a third of the
tasks get a due date.

Usage:
    python -m scripts.seed [--nodes 200] [--clear] [--seed 42] [--benchmark]
"""

import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import delete

from todograph.database import async_session_maker, init_db
from todograph.models import Task, TaskDependency
from todograph.services.critical_path import analyze
from todograph.services.graph import fetch_tasks


def build_seed_plan(
    num_nodes: int = 200,
    seed: Optional[int] = None,
    start: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc),
) -> list[dict[str, Any]]:
    """
    Plan the tasks to insert.

    Returns one dict per task with "title", "due_date" and "depends_on"
    (indexes of earlier tasks in the returned list).
    """
    rng = random.Random(seed)

    num_waves = max(1, min(10, num_nodes // 5))
    tasks_per_wave = max(1, num_nodes // num_waves)

    plan: list[dict[str, Any]] = []
    waves: list[list[int]] = []

    for wave in range(num_waves):
        wave_size = tasks_per_wave
        # Last wave gets remaining tasks
        if wave == num_waves - 1:
            wave_size = num_nodes - len(plan)

        wave_indexes = []
        for i in range(wave_size):
            depends_on: list[int] = []
            if waves:
                # Prefer recent waves but occasionally reach back further
                available_waves = waves[max(0, wave - 3):wave]
                for _ in range(rng.randint(1, 3)):
                    dep_index = rng.choice(rng.choice(available_waves))
                    if dep_index not in depends_on:
                        depends_on.append(dep_index)

            due_date = None
            if rng.random() < 0.33:
                due_date = start + timedelta(days=wave * 7 + rng.randint(0, 6))

            wave_indexes.append(len(plan))
            plan.append({
                "title": f"Task W{wave:02d}-{i:03d}",
                "due_date": due_date,
                "depends_on": depends_on,
            })

        waves.append(wave_indexes)

    return plan


async def clear_data():
    """Clear all existing data."""
    print("Clearing existing data...")
    async with async_session_maker() as session:
        await session.execute(delete(TaskDependency))
        await session.execute(delete(Task))
        await session.commit()
    print("Data cleared.")


async def insert_plan(plan: list[dict[str, Any]]) -> list[int]:
    """Insert planned tasks and their dependencies; returns the new task IDs."""
    async with async_session_maker() as session:
        tasks = [Task(title=item["title"], due_date=item["due_date"]) for item in plan]
        session.add_all(tasks)
        await session.flush()

        task_ids = [task.id for task in tasks]
        for item, task_id in zip(plan, task_ids):
            for dep_index in item["depends_on"]:
                session.add(TaskDependency(task_id=task_id, depends_on_id=task_ids[dep_index]))

        await session.commit()
        return task_ids


async def run_benchmark():
    """Time one full critical-path analysis over the stored tasks."""
    async with async_session_maker() as session:
        start_time = time.time()
        tasks = await fetch_tasks(session)
        fetch_time = time.time() - start_time

        start_time = time.time()
        analysis = analyze(tasks)
        analyze_time = time.time() - start_time

    print(f"\n=== Benchmark ===")
    print(f"Fetch time:    {fetch_time * 1000:.2f}ms ({len(tasks)} tasks)")
    print(f"Analysis time: {analyze_time * 1000:.2f}ms")
    print(f"Critical path: {len(analysis.critical_path)} tasks")


async def main():
    parser = argparse.ArgumentParser(description="Seed the database with a random task graph")
    parser.add_argument("--nodes", type=int, default=200, help="Number of tasks to create")
    parser.add_argument("--clear", action="store_true", help="Clear existing data first")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--benchmark", action="store_true", help="Time the analysis after seeding")

    args = parser.parse_args()

    print(f"=== TodoGraph Seed Script ===")

    await init_db()

    if args.clear:
        await clear_data()

    plan = build_seed_plan(args.nodes, args.seed)
    num_deps = sum(len(item["depends_on"]) for item in plan)

    start_time = time.time()
    await insert_plan(plan)
    print(f"Inserted {len(plan)} tasks and {num_deps} dependencies in {time.time() - start_time:.2f}s")

    if args.benchmark:
        await run_benchmark()

    print(f"\n=== Seeding Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
