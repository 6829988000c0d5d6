from database import Base, engine
import models  # noqa: F401  registers the tables

print("Creating database tables...")
Base.metadata.create_all(bind=engine)
print("Database tables created successfully!")
