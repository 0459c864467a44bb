"""Use-case layer for the snapshot bootstrap workflow.

Each module performs one step of acquiring, verifying, staging or installing a
chain snapshot through domain ports, without owning threads or run state.
"""
