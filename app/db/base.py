from app.db.session import Base  # noqa: F401

# import ALL models here
import app.models.user  # noqa: F401
import app.models.group  # noqa: F401
import app.models.split_record  # noqa: F401
import app.models.split_template  # noqa: F401
