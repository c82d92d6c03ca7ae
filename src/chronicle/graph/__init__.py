"""Entity graph: in-memory store, ordering engine, derived views, local persistence.

Layout:
    store.py      EntityGraphStore, the single writer-guarded copy of UserData
    patches.py    patch instructions accepted by EntityGraphStore.apply()
    ordering.py   dense 1..n renumbering, era cascade, cross-era move plans
    views.py      tags, era-grouped timeline, link resolution
    snapshot.py   ~/.chronicle/snapshots/user__<name>.json offline cache
    export.py     manuscripts → Markdown with YAML front matter
"""
