import pytest

from models import SharedTemplate
from scheduler import template_for
from seed import seed, shared_templates


def test_templates_cover_every_week():
    for template in shared_templates():
        assert template.is_public
        assert {row.week for row in template.workouts} == set(range(1, template.duration + 1))
        assert template.total_workouts == sum(1 for row in template.workouts if not row.is_rest_day)
        assert template_for(template, 1, 0) is None


@pytest.mark.asyncio
async def test_seed_is_idempotent(store):
    assert await seed(store) == 2
    assert await seed(store) == 0

    names = sorted(plan.name for plan in store.plans.values() if isinstance(plan, SharedTemplate))
    assert names == ["Beginner Full Body", "Weight Loss & Toning"]
