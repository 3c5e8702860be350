class EngineContextFilter:
    """
    Menambahkan konteks evaluasi ke record log.
    Jika belum ada, isi dengan '-'.
    """
    fields = ("student_id", "year_id", "term_id", "area_id")

    def filter(self, record):
        for name in self.fields:
            if not hasattr(record, name):
                setattr(record, name, "-")
        if not hasattr(record, "level_color"):
            record.level_color = ""
        # Color by level (WARNING yellow, ERROR red)
        if record.levelno >= 40:
            record.level_color = "\x1b[31m"
        elif record.levelno >= 30:
            record.level_color = "\x1b[33m"
        return True
