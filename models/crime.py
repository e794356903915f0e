from extensions import db


class Crime(db.Model):
    __tablename__ = 'crime'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    min_reward = db.Column(db.Integer, nullable=False, default=0)
    max_reward = db.Column(db.Integer, nullable=False, default=0)
    success_rate = db.Column(db.Float, nullable=False, default=0.5)
    cooldown_seconds = db.Column(db.Integer, nullable=False, default=0)
    xp_reward = db.Column(db.Integer, nullable=False, default=0)

    def problems(self):
        """Return the invariant violations of this definition, empty when it is usable."""
        found = []
        for field in ('min_reward', 'max_reward', 'success_rate', 'cooldown_seconds', 'xp_reward'):
            if getattr(self, field) is None:
                found.append(f'{field} is missing')
        if found:
            return found
        if not self.name or not self.name.strip():
            found.append('name is blank')
        if self.min_reward < 0:
            found.append('min_reward is negative')
        if self.min_reward > self.max_reward:
            found.append('min_reward exceeds max_reward')
        if not 0.0 <= self.success_rate <= 1.0:
            found.append('success_rate outside [0, 1]')
        if self.cooldown_seconds < 0:
            found.append('cooldown_seconds is negative')
        if self.xp_reward < 0:
            found.append('xp_reward is negative')
        return found

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'min_reward': self.min_reward,
            'max_reward': self.max_reward,
            'success_rate': self.success_rate,
            'cooldown_seconds': self.cooldown_seconds,
            'xp_reward': self.xp_reward,
        }

    def __repr__(self):
        return f'<Crime {self.name}>'
