from app.models.storage import StoredValue

# add ALL models here
