import pytest

from tradingroom.db import models
from tradingroom.services.access_service import AccessService


@pytest.fixture
def world(factory):
    owner = factory.user("owner@example.com", "Owner")
    server = factory.server(owner)
    return owner, server


class TestRoleChannelAccess:
    def test_admin_role_sees_everything(self, db, factory, world):
        owner, server = world
        channel = factory.channel(server, owner, name="vip")
        admin = factory.role(server, "admin")
        assert AccessService(db).role_can_access_channel(admin, channel) is True

    def test_free_role_without_grant_sees_nothing(self, db, factory, world):
        owner, server = world
        channel = factory.channel(server, owner)
        assert AccessService(db).role_can_access_channel(factory.role(server, "free"), channel) is False

    def test_direct_channel_grant(self, db, factory, world):
        owner, server = world
        channel = factory.channel(server, owner)
        free = factory.role(server, "free")
        service = AccessService(db)
        assert service.grant_channel_access(free, channel) is True
        assert service.role_can_access_channel(free, channel) is True

    def test_grants_are_idempotent(self, db, factory, world):
        owner, server = world
        channel = factory.channel(server, owner)
        free = factory.role(server, "free")
        service = AccessService(db)
        assert service.grant_channel_access(free, channel) is True
        assert service.grant_channel_access(free, channel) is False
        assert db.query(models.RoleChannelAccess).count() == 1
        assert service.revoke_channel_access(free, channel) is True
        assert service.revoke_channel_access(free, channel) is False

    def test_section_grant_covers_nested_sections(self, db, factory, world):
        owner, server = world
        top = factory.section(server, owner, name="Premium")
        middle = factory.section(server, owner, name="Crypto", parent=top)
        leaf = factory.section(server, owner, name="Alts", parent=middle)
        channel = factory.channel(server, owner, name="alt-signals", section=leaf)
        premium = factory.role(server, "premium")
        service = AccessService(db)

        assert service.role_can_access_channel(premium, channel) is False
        service.grant_section_access(premium, top)
        assert service.role_can_access_channel(premium, channel) is True
        assert premium.id in service.eligible_role_ids(channel)

    def test_section_cycle_terminates(self, db, factory, world):
        owner, server = world
        a = factory.section(server, owner, name="A")
        b = factory.section(server, owner, name="B", parent=a)
        a.parent_id = b.id
        db.commit()
        channel = factory.channel(server, owner, section=b)
        service = AccessService(db)

        assert set(service.section_chain(b.id)) == {a.id, b.id}
        assert service.role_can_access_channel(factory.role(server, "free"), channel) is False

    def test_cross_server_grant_rejected(self, db, factory, world):
        owner, server = world
        other = factory.server(owner, name="Other")
        channel = factory.channel(other, owner)
        with pytest.raises(ValueError):
            AccessService(db).grant_channel_access(factory.role(server, "free"), channel)


class TestMemberAccess:
    def test_accessible_channel_ids_follow_role(self, db, factory, world):
        owner, server = world
        general = factory.channel(server, owner, name="general")
        vip = factory.channel(server, owner, name="vip")
        service = AccessService(db)
        service.grant_channel_access(factory.role(server, "free"), general)

        member = factory.join(server, factory.user("free@example.com"))
        assert service.accessible_channel_ids(member) == {general.id}

        owner_member = db.query(models.Member).filter_by(server_id=server.id, user_id=owner.id).one()
        assert service.accessible_channel_ids(owner_member) == {general.id, vip.id}

    def test_non_member_denied_and_superadmin_allowed(self, db, factory, world):
        owner, server = world
        channel = factory.channel(server, owner)
        service = AccessService(db)
        assert service.member_can_access_channel(factory.user("stranger@example.com"), channel) is False
        assert service.member_can_access_channel(factory.user("root@example.com", is_superadmin=True), channel) is True

    def test_can_manage_server(self, db, factory, world):
        owner, server = world
        service = AccessService(db)
        member = factory.user("member@example.com")
        factory.join(server, member)
        moderator = factory.user("mod@example.com")
        factory.join(server, moderator, role_name="admin")

        assert service.can_manage_server(owner, server) is True
        assert service.can_manage_server(moderator, server) is True
        assert service.can_manage_server(member, server) is False

    def test_announcement_posts_need_manager(self, db, factory, world):
        owner, server = world
        channel = factory.channel(server, owner, name="news", type="announcement")
        service = AccessService(db)
        service.grant_channel_access(factory.role(server, "free"), channel)
        reader = factory.user("reader@example.com")
        factory.join(server, reader)

        assert service.member_can_access_channel(reader, channel) is True
        assert service.can_post(reader, channel) is False
        assert service.can_post(owner, channel) is True
