"""Modified-region tracking driven by marker comments.

Patched code is bracketed by line comments such as::

    // Bukkit start
    int added = 1;
    // Bukkit end

Declarations inside the bracket are indexed from a separate counter so that
adding or removing patched code never renumbers the surrounding original
code.
"""

START_COMMAND = 'start'
END_COMMAND = 'end'


class RegionTracker:
    """Single boolean state toggled by marker comments."""

    def __init__(self):
        self.within_added_code = False

    def observe(self, comment_text: str):
        """Update the region flag from one line comment.

        The first token is the comment leader, the second names the patching
        project (not interpreted) and the third is the command. Comments that
        don't follow this shape are ignored.

        Args:
            comment_text: Full text of the comment, including the leader
        """
        words = comment_text.split()
        if len(words) < 3:
            return

        command = words[2].lower()
        if command == START_COMMAND:
            self.within_added_code = True
        elif command == END_COMMAND:
            self.within_added_code = False

    def reset(self):
        self.within_added_code = False
