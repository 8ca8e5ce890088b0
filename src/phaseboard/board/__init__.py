"""Project board domain.

Phases and items in a user-defined order, drag reordering with optimistic
updates, completion cascading from items to their phase, sub-item
checklists, and the project activity feed.

Modules:
    models: Immutable board values and status enums.
    ordering: Position arithmetic over ordered collections.
    subitems: Sub-item string codec.
    cascade: Item/phase completion rules.
    repository: Persistence adapter over a DataGateway.
    activity: The project's activity feed.
    reorder: Optimistic drag reordering of phases or items.
    drawer: Editable item draft.
    session: BoardSession, the owner of one project's board.

Submodules are imported directly; the ORM layer depends on ``models``, so
this package does not import the others eagerly.
"""
