from flask_sqlalchemy import SQLAlchemy

from barberboost.extensions.s3 import S3Client

db = SQLAlchemy()
s3 = S3Client()
