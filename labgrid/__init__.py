# Lab Seat Grid — layout engine for the two lab rooms
# catalog.py    — fixture kinds & footprints, editor palette
# grid.py       — Cell / Grid model, empty grid with the wall column
# placement.py  — place / erase / drag-paint with bounds, wall and collision checks
# normalize.py  — snapshot parsing & group metadata reconciliation
# rooms.py      — split the grid into Sala 1 / Sala 2
# occupancy.py  — seat status merge & one selection per user
# store.py      — editor session: injected load/save + debounced autosave
# repository.py — in-memory layout versions & room status board
# reservations.py — reservation book feeding the occupied-seat list
# errors.py     — NotFoundError for unknown rooms, versions, reservations
