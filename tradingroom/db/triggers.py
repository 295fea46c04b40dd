"""
PostgreSQL trigger that fans a new message out into ``notifications`` rows.

The trigger mirrors the application-level fan-out in
``tradingroom.services.notification_service``:

* recipients are members of the channel's server whose role is admin, has a
  direct channel grant, or has a grant on the channel's section or any
  ancestor section;
* the sender is excluded;
* a ``channel_notification_preferences`` row with ``enabled = false`` opts
  the user out (no row means enabled);
* ``@token`` matching the recipient's display name without spaces or the
  local part of their email marks the row as a ``mention``.

Migrations install it disabled. ``NotificationTriggerService`` flips it on,
after which ``MessageService`` stops creating the rows itself. The retention
window is fixed at 30 days here since the database cannot see
``NOTIFICATION_TTL_DAYS``.

Statements avoid ``%`` and ``:`` so they can run through both Alembic and
``exec_driver_sql`` unchanged.
"""

FUNCTION_NAME = "notify_channel_subscribers"
TRIGGER_NAME = "trg_messages_notify_channel_subscribers"

# Recursion cap for the section parent chain; stops runaway cycles.
MAX_SECTION_DEPTH = 64

CREATE_FUNCTION_SQL = r"""
CREATE OR REPLACE FUNCTION notify_channel_subscribers() RETURNS TRIGGER AS $$
DECLARE
    v_channel RECORD;
    v_sender RECORD;
    v_preview TEXT;
BEGIN
    SELECT c.id, c.name, c.server_id, c.section_id, s.name AS server_name
      INTO v_channel
      FROM channels c
      JOIN servers s ON s.id = c.server_id
     WHERE c.id = NEW.channel_id;

    IF NOT FOUND THEN
        RETURN NEW;
    END IF;

    SELECT m.user_id,
           COALESCE(NULLIF(u.display_name, ''), split_part(u.email, '@', 1)) AS sender_name
      INTO v_sender
      FROM members m
      JOIN users u ON u.id = m.user_id
     WHERE m.id = NEW.member_id;

    IF char_length(NEW.content) > 100 THEN
        v_preview := substr(NEW.content, 1, 100) || '...';
    ELSE
        v_preview := NEW.content;
    END IF;

    WITH RECURSIVE section_chain(id, depth) AS (
        SELECT v_channel.section_id, 0
         WHERE v_channel.section_id IS NOT NULL
        UNION ALL
        SELECT sec.parent_id, sc.depth + 1
          FROM sections sec
          JOIN section_chain sc ON sec.id = sc.id
         WHERE sec.parent_id IS NOT NULL
           AND sc.depth < 64
    ),
    eligible_roles AS (
        SELECT r.id
          FROM roles r
         WHERE r.server_id = v_channel.server_id
           AND (
                r.is_admin
                OR EXISTS (
                    SELECT 1 FROM role_channel_access rca
                     WHERE rca.role_id = r.id AND rca.channel_id = v_channel.id
                )
                OR EXISTS (
                    SELECT 1 FROM role_section_access rsa
                      JOIN section_chain sc ON sc.id = rsa.section_id
                     WHERE rsa.role_id = r.id
                )
           )
    ),
    recipients AS (
        SELECT u.id AS user_id,
               lower(replace(COALESCE(u.display_name, ''), ' ', '')) AS handle,
               lower(split_part(u.email, '@', 1)) AS local_part
          FROM members m
          JOIN users u ON u.id = m.user_id
         WHERE m.server_id = v_channel.server_id
           AND m.role_id IN (SELECT id FROM eligible_roles)
           AND m.user_id IS DISTINCT FROM v_sender.user_id
           AND COALESCE((
                SELECT p.enabled FROM channel_notification_preferences p
                 WHERE p.user_id = m.user_id AND p.channel_id = v_channel.id
           ), TRUE)
    ),
    classified AS (
        SELECT rc.user_id,
               EXISTS (
                   SELECT 1 FROM regexp_matches(NEW.content, '@(\w+)', 'g') AS t(tok)
                    WHERE lower(t.tok[1]) = rc.handle OR lower(t.tok[1]) = rc.local_part
               ) AS mentioned
          FROM recipients rc
    )
    INSERT INTO notifications (
        id, user_id, event_type, title, message, action_url, metadata,
        message_id, is_read, created_at, expires_at
    )
    SELECT gen_random_uuid(),
           cl.user_id,
           CASE WHEN cl.mentioned THEN 'mention' ELSE 'new_message' END,
           CASE WHEN cl.mentioned THEN 'You were mentioned in #' || v_channel.name
                ELSE 'New message in #' || v_channel.name END,
           COALESCE(v_sender.sender_name, 'Someone') || ': ' || v_preview,
           '/servers/' || v_channel.server_id || '/channels/' || v_channel.id,
           jsonb_build_object(
               'channel_id', v_channel.id,
               'channel_name', v_channel.name,
               'message_id', NEW.id,
               'sender_id', v_sender.user_id,
               'sender_name', v_sender.sender_name,
               'server_id', v_channel.server_id,
               'server_name', v_channel.server_name
           ),
           NEW.id,
           FALSE,
           now(),
           now() + interval '30 days'
      FROM classified cl
    ON CONFLICT (user_id, message_id) DO NOTHING;

    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

CREATE_TRIGGER_SQL = (
    f"CREATE TRIGGER {TRIGGER_NAME} AFTER INSERT ON messages "
    f"FOR EACH ROW EXECUTE FUNCTION {FUNCTION_NAME}()"
)
DISABLE_TRIGGER_SQL = f"ALTER TABLE messages DISABLE TRIGGER {TRIGGER_NAME}"
ENABLE_TRIGGER_SQL = f"ALTER TABLE messages ENABLE TRIGGER {TRIGGER_NAME}"
DROP_TRIGGER_SQL = f"DROP TRIGGER IF EXISTS {TRIGGER_NAME} ON messages"
DROP_FUNCTION_SQL = f"DROP FUNCTION IF EXISTS {FUNCTION_NAME}()"

# tgenabled: 'O' origin (enabled), 'D' disabled, 'R'/'A' replica/always
TRIGGER_STATE_SQL = (
    "SELECT tgenabled FROM pg_trigger "
    f"WHERE tgname = '{TRIGGER_NAME}' AND NOT tgisinternal"
)
FUNCTION_EXISTS_SQL = f"SELECT 1 FROM pg_proc WHERE proname = '{FUNCTION_NAME}'"
