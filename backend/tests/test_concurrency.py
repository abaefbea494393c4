"""
Concurrency tests for graph writes.

Creations and deletions that overlap in time must each commit, never
leave a link row pointing at a missing task, and never let two writers
check the graph against the same snapshot.
"""

import asyncio

from sqlmodel import select

from todograph.models import Task, TaskDependency
from todograph.routes import tasks as tasks_routes


async def _create(client, title, dependencies=None):
    response = await client.post("/tasks/", json={"title": title, "dependencies": dependencies})
    assert response.status_code == 201, response.text
    return response.json()


async def _stored_links(session_maker):
    async with session_maker() as session:
        task_ids = set((await session.execute(select(Task.id))).scalars().all())
        links = (await session.execute(select(TaskDependency))).scalars().all()
        return task_ids, [(link.task_id, link.depends_on_id) for link in links]


class TestOverlappingWrites:

    async def test_parallel_creates_all_commit(self, client, session_maker):
        base = await _create(client, "Pour foundation")

        responses = await asyncio.gather(*[
            client.post("/tasks/", json={"title": f"Wall {i}", "dependencies": [base["id"]]})
            for i in range(8)
        ])

        assert [r.status_code for r in responses] == [201] * 8
        ids = [r.json()["id"] for r in responses]
        assert len(set(ids)) == 8

        task_ids, links = await _stored_links(session_maker)
        assert len(task_ids) == 9
        assert sorted(links) == sorted((task_id, base["id"]) for task_id in ids)

    async def test_interleaved_deletes_and_creates(self, client, session_maker):
        chain = []
        for i in range(6):
            deps = [chain[-1]["id"]] if chain else None
            chain.append(await _create(client, f"Step {i}", dependencies=deps))
        ids = [task["id"] for task in chain]

        requests = [
            client.delete(f"/tasks/{ids[1]}"),
            client.post("/tasks/", json={"title": "Side A", "dependencies": [ids[0], ids[2]]}),
            client.delete(f"/tasks/{ids[3]}"),
            client.post("/tasks/", json={"title": "Side B", "dependencies": [ids[4]]}),
            client.post("/tasks/", json={"title": "Side C", "dependencies": [ids[5], ids[0]]}),
        ]
        responses = await asyncio.gather(*requests)

        assert [r.status_code for r in responses] == [204, 201, 204, 201, 201]

        task_ids, links = await _stored_links(session_maker)
        assert ids[1] not in task_ids
        assert ids[3] not in task_ids
        assert len(task_ids) == 7
        for task_id, dep_id in links:
            assert task_id in task_ids
            assert dep_id in task_ids

        listed = (await client.get("/tasks/")).json()
        for task in listed:
            for dep in task["dependencies"]:
                assert dep["id"] in task_ids

        critical = await client.get("/tasks/critical-path")
        assert critical.status_code == 200

    async def test_writers_never_overlap(self, client, monkeypatch):
        original = tasks_routes._load_snapshot
        active = 0
        peak = 0

        async def tracking_snapshot(session):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            try:
                # Yield so other requests get a chance to enter
                await asyncio.sleep(0.01)
                return await original(session)
            finally:
                active -= 1

        monkeypatch.setattr(tasks_routes, "_load_snapshot", tracking_snapshot)

        responses = await asyncio.gather(*[
            client.post("/tasks/", json={"title": f"Chore {i}"}) for i in range(5)
        ])

        assert [r.status_code for r in responses] == [201] * 5
        assert peak == 1
