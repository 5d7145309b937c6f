"""
Client-side import pipeline.

Stages a file, resolves its columns, collects the field mapping and attribute
drafts, previews the result and commits it through the import collaborator.
"""
