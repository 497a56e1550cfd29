"""Task pipeline: extract checklist items, run them through an agent, commit.

The checklist document on disk is the only durable state.  Each run parses
it once, then processes pending items strictly in order:

    agent call (with retry) -> mark complete -> commit

Task N+1 never starts before task N is committed, because the agent works on
the same working tree the commit covers.  A halted run leaves the checklist
and the history reflecting exactly the completed prefix, so re-running the
pipeline resumes at the first remaining pending item.
"""
