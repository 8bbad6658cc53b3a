from hallmark import db
from datetime import datetime

NEWS_CATEGORIES = ('ACHIEVEMENT', 'SPORTS', 'FACILITIES', 'ARTS', 'EDUCATION', 'COMMUNITY', 'GENERAL')
NEWS_STATUSES = ('DRAFT', 'PUBLISHED', 'ARCHIVED')


class News(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.String(500))
    author = db.Column(db.String(120))
    category = db.Column(db.String(20), default='GENERAL', nullable=False)
    status = db.Column(db.String(10), default='DRAFT', nullable=False)
    featured = db.Column(db.Boolean, default=False)
    image = db.Column(db.String(500))
    read_time = db.Column(db.Integer)
    published_at = db.Column(db.DateTime)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'excerpt': self.excerpt,
            'author': self.author,
            'category': self.category,
            'status': self.status,
            'featured': self.featured,
            'image': self.image,
            'read_time': self.read_time,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'school_id': self.school_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
