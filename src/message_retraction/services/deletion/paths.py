"""Where conversations, logs and preview replicas live in the store."""

from message_retraction.store import CollectionReference, DocumentReference, DocumentStore

GROUP_CHATS = "EventChats"
GROUP_EVENTS = "events"
MESSAGES = "Messages"
CONNECTIONS = "Connections"
CONVERSATIONS = "Conversations"


def group_aggregate(store: DocumentStore, group_id: str) -> DocumentReference:
    return store.collection(GROUP_CHATS).document(group_id)


def group_source_event(store: DocumentStore, group_id: str) -> DocumentReference:
    return store.collection(GROUP_EVENTS).document(group_id)


def group_log(store: DocumentStore, group_id: str) -> CollectionReference:
    return group_aggregate(store, group_id).collection(MESSAGES)


def direct_log(store: DocumentStore, owner_id: str, peer_id: str) -> CollectionReference:
    """Return `owner_id`'s copy of the thread with `peer_id`."""
    return store.collection(MESSAGES).document(owner_id).collection(peer_id)


def preview_replica(store: DocumentStore, user_id: str, conversation_key: str) -> DocumentReference:
    """Return the preview `user_id` sees for `conversation_key`."""
    return store.collection(CONNECTIONS).document(user_id).collection(CONVERSATIONS).document(
        conversation_key
    )
