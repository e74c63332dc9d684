"""
Tests for the projection builder and its queue processor
"""
import pytest

from orgsource.commands import (
    AddLocation,
    AddMember,
    ChangeReportingRelationship,
    DissolveOrganization,
    MergeOrganizations,
    RemoveMember,
    UpdateMemberRole,
)
from orgsource.errors import EventLogCorruptionError
from orgsource.messaging import EventPublisher, InMemoryMessageAdapter
from orgsource.models import OrganizationStatus, OrganizationType, Role, RoleLevel
from orgsource.projections import ProjectionBuilder, ProjectionEventProcessor
from orgsource.repositories import OrganizationRepository

from org_fixtures import create_active


@pytest.fixture
def populated(repository):
    """A company with two departments, a team, members and locations."""
    create_active(repository, 'acme', OrganizationType.COMPANY)
    create_active(repository, 'eng', parent_id='acme')
    create_active(repository, 'sales', parent_id='acme')
    create_active(repository, 'platform', OrganizationType.TEAM, parent_id='eng')
    for command in (
        AddMember(person_id='ceo', role=Role.ceo()),
        AddMember(person_id='cto', role=Role.director(), reports_to='ceo'),
        AddMember(person_id='em', role=Role.manager(), reports_to='cto'),
        AddMember(person_id='dev-1', role=Role.software_engineer(), reports_to='em'),
        AddMember(person_id='dev-2', role=Role.software_engineer(), reports_to='em'),
        AddLocation(location_id='hq'),
        AddLocation(location_id='lab'),
    ):
        assert repository.execute('acme', command).ok
    assert repository.execute('eng', AddLocation(location_id='hq')).ok
    return repository


@pytest.fixture
def builder(populated, event_log):
    builder = ProjectionBuilder()
    builder.rebuild(event_log)
    return builder


class TestApply:
    def test_apply_is_idempotent(self, populated, event_log):
        events = event_log.read_all()
        builder = ProjectionBuilder()
        assert builder.apply_all(events) == len(events)
        before = builder.view('acme').as_dict()
        assert builder.apply_all(events) == 0
        assert builder.apply(events[0]) is False
        assert builder.view('acme').as_dict() == before

    def test_rebuild_matches_incremental_application(self, populated, event_log):
        incremental = ProjectionBuilder()
        for event in event_log.read_all():
            incremental.apply(event)
        rebuilt = ProjectionBuilder()
        rebuilt.apply(event_log.read_all()[0])
        assert rebuilt.rebuild(event_log) == len(event_log.read_all())
        assert {k: v.as_dict() for k, v in rebuilt.views.items()} == \
            {k: v.as_dict() for k, v in incremental.views.items()}

    def test_early_event_waits_for_its_predecessor(self, repository, event_log):
        create_active(repository, 'o')
        assert repository.execute('o', AddMember(person_id='a', role=Role.manager())).ok
        assert repository.execute('o', AddMember(person_id='b', role=Role.software_engineer())).ok
        assert repository.execute('o', ChangeReportingRelationship(person_id='b', new_manager_id='a')).ok
        e1, e2, e3, e4, e5 = event_log.read('o')

        builder = ProjectionBuilder()
        assert builder.apply_all([e1, e2, e3, e5]) == 4
        assert builder.pending_versions('o') == [5]
        assert builder.view('o').version == 3
        assert 'b' not in builder.view('o').members

        assert builder.apply(e4) is True
        assert builder.pending_versions('o') == []
        assert builder.view('o').version == 5
        assert builder.reporting_chain('o', 'b') == ['a']

    def test_shuffled_delivery_matches_ordered_delivery(self, populated, event_log):
        events = event_log.read_all()
        ordered = ProjectionBuilder()
        ordered.apply_all(events)
        shuffled = ProjectionBuilder()
        assert shuffled.apply_all(reversed(events)) == len(events)
        assert {k: v.as_dict() for k, v in shuffled.views.items()} == \
            {k: v.as_dict() for k, v in ordered.views.items()}

    def test_redelivered_event_is_ignored_while_held_back(self, populated, event_log):
        builder = ProjectionBuilder()
        first, second, third = event_log.read('acme')[:3]
        assert builder.apply(third) is True
        assert builder.apply(third) is False
        assert builder.apply_all([first, second]) == 2
        assert builder.apply(second) is False
        assert builder.view('acme').version == 3

    def test_view_agrees_with_aggregate(self, builder, populated):
        view = builder.view('acme')
        state = populated.get('acme')
        assert view.version == state.version
        assert view.status is state.status
        assert view.child_ids == set(state.child_ids)
        assert view.location_ids == set(state.location_ids)
        assert view.primary_location_id == state.primary_location_id
        assert set(view.members) == set(state.members)

    def test_unknown_organization(self, builder):
        assert builder.view('nobody') is None
        assert builder.statistics('nobody') is None
        assert builder.hierarchy_tree('nobody') is None
        assert builder.reporting_structure('nobody') == []

    def test_handle_message(self, populated, event_log):
        builder = ProjectionBuilder()
        message = event_log.read('acme')[0].as_dict(convert_datetime_to_iso_string=True)
        assert builder.handle_message(message) is True
        assert builder.handle_message(message) is False
        assert builder.view('acme').status is OrganizationStatus.CREATING

    def test_handle_bad_message(self):
        with pytest.raises(EventLogCorruptionError):
            ProjectionBuilder().handle_message({'event_type': 'Nope'})


class TestQueries:
    def test_roots(self, builder):
        assert builder.roots() == ['acme']

    def test_hierarchy_tree(self, builder):
        tree = builder.hierarchy_tree('acme')
        assert tree['name'] == 'Acme'
        assert tree['org_type'] == 'Company'
        assert [child['entity_id'] for child in tree['children']] == ['eng', 'sales']
        eng = tree['children'][0]
        assert [child['entity_id'] for child in eng['children']] == ['platform']
        assert eng['children'][0]['children'] == []

    def test_reporting_chain(self, builder):
        assert builder.reporting_chain('acme', 'dev-1') == ['em', 'cto', 'ceo']
        assert builder.reporting_chain('acme', 'ceo') == []
        assert builder.reporting_chain('acme', 'ghost') == []

    def test_reporting_structure(self, builder):
        (ceo,) = builder.reporting_structure('acme')
        assert ceo['person_id'] == 'ceo'
        assert ceo['level'] == 'Executive'
        em = ceo['reports'][0]['reports'][0]
        assert em['title'] == 'Manager'
        assert [r['person_id'] for r in em['reports']] == ['dev-1', 'dev-2']

    def test_statistics(self, builder):
        stats = builder.statistics('acme')
        assert stats.member_count == 5
        assert stats.members_by_role == {
            'Chief Executive Officer': 1, 'Director': 1, 'Manager': 1, 'Software Engineer': 2}
        assert stats.members_by_level[str(RoleLevel.MID)] == 2
        assert stats.management_count == 3
        assert stats.reporting_depth == 4
        assert stats.location_count == 2
        assert stats.primary_location_id == 'hq'
        assert stats.child_count == 2
        assert stats.as_dict()['size_category'] == 'Startup'

    def test_statistics_follow_member_changes(self, populated, event_log):
        populated.execute('acme', UpdateMemberRole(person_id='dev-2', new_role=Role.manager()))
        populated.execute('acme', ChangeReportingRelationship(person_id='dev-1', new_manager_id='cto'))
        populated.execute('acme', RemoveMember(person_id='em', reassign_reports=True, new_manager_id='cto'))
        builder = ProjectionBuilder()
        builder.rebuild(event_log)
        stats = builder.statistics('acme')
        assert stats.member_count == 4
        assert stats.members_by_role['Manager'] == 1
        assert stats.reporting_depth == 3

    def test_size_distribution(self, builder):
        distribution = builder.size_distribution()
        assert distribution['Startup'] == 4
        assert set(distribution) == {'Startup', 'Small', 'Medium', 'Large', 'Enterprise', 'MegaCorp'}

    def test_location_distribution(self, builder):
        assert builder.location_distribution() == {'hq': 2, 'lab': 1}

    def test_terminal_organizations_leave_distributions(self, populated, event_log):
        assert populated.execute('platform', DissolveOrganization(reason='done')).ok
        assert populated.execute('acme', MergeOrganizations(source_id='sales')).ok
        builder = ProjectionBuilder()
        builder.rebuild(event_log)
        assert builder.size_distribution()['Startup'] == 2
        assert builder.view('sales').merged_into == 'acme'
        assert builder.view('acme').absorbed_ids == {'sales'}
        assert builder.view('platform').status is OrganizationStatus.DISSOLVED


def test_processor_consumes_published_events(event_log):
    adapter = InMemoryMessageAdapter()
    repository = OrganizationRepository(event_log, publisher=EventPublisher(adapter, 'org-events'))
    create_active(repository, 'acme', OrganizationType.COMPANY)
    repository.execute('acme', AddMember(person_id='ceo', role=Role.ceo()))

    processor = ProjectionEventProcessor()
    adapter.consume_messages('org-events', processor.process)
    assert adapter.pending('org-events') == []
    assert processor.builder.statistics('acme').member_count == 1

    # redelivery is ignored
    for event in event_log.read_all():
        processor.process(event.as_dict(convert_datetime_to_iso_string=True))
    assert processor.builder.view('acme').version == 3
