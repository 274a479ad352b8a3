"""Pure SLA computation: calendar resolution, business-time arithmetic,
target lookup and pause bookkeeping. Nothing here touches the database or
reads the wall clock."""
