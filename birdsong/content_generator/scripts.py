"""
Bird Song Explorer script text.

Intro lines, bird intro templates, weekday outros and seasonal lines.
Every pick is keyed off the date so a whole day's program reads the same
on every request. Pause markers are turned into SSML breaks by
helpers.preprocess_for_tts().
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from birdsong.daily import SALT_FACT, SALT_INTRO_LINE, SALT_OUTRO_TEXT, SALT_SEASON, pick
from birdsong.outros import content_type_for_day

INTRO_LINES = [
    "Welcome, nature detectives! Time to discover an amazing bird from your neighborhood.",
    "Hello, bird explorers! Today's special bird is waiting to sing for you.",
    "Ready for an adventure? Let's meet today's featured bird from your area!",
    "Welcome back, little listeners! A wonderful bird is calling just for you.",
    "Hello, young scientists! Let's explore the amazing birds living near you.",
    "Calling all bird lovers! Your daily bird discovery awaits.",
    "Time for today's bird adventure! Listen closely to nature's music.",
    "Welcome to your daily bird journey! Let's discover who's singing today.",
]

BIRD_INTRO_TEMPLATES = [
    "Today's featured friend is the {bird}! Let's hear their beautiful song.",
    "Listen closely! The amazing {bird} has something special to share with you.",
    "Get ready to meet the wonderful {bird} from your neighborhood!",
    "Your bird discovery today is the {bird}! What an incredible creature!",
]

GENERAL_JOKES = [
    "Why don't you ever see birds using Facebook? Because they already have Twitter!",
    "What do you call a bird that's afraid of heights? A chicken!",
    "Why do hummingbirds hum? Because they don't know the words!",
    "What's a bird's favorite type of math? Owl-gebra!",
    "Why did the pelican get kicked out of the restaurant? Because he had a very big bill!",
    "What do you call a very rude bird? A mockingbird!",
    "Why don't birds get lost? Because they always take the fly-way!",
    "What's a parrot's favorite game? Hide and speak!",
    "Why did the bird go to school? To improve its tweet-ing skills!",
    "What do you call a bird in winter? Brrr-d!",
    "What's a bird's favorite snack? Chocolate chirp cookies!",
    "Why are birds so good at dodgeball? They're excellent at duck-ing!",
    "What do you give a sick bird? Tweet-ment!",
    "Why don't seagulls fly over bays? Because then they'd be bagels!",
    "What do you call a funny chicken? A comedi-hen!",
    "Why did the baby bird get in trouble? It was caught peeping!",
    "What do you call two birds in love? Tweet-hearts!",
    "Why are birds always happy? They wake up on the bright side of the perch!",
]

SPECIFIC_JOKES = {
    "Great Horned Owl": "What do you call an owl magician? Hoo-dini!",
    "Barred Owl": "Knock knock! Who's there? Owl. Owl who? Owl tell you another joke tomorrow!",
    "Mallard": "What time do ducks wake up? At the quack of dawn!",
    "American Crow": "What's a crow's favorite drink? Caw-fee!",
    "Wild Turkey": "Why did the turkey cross the road? To prove it wasn't chicken!",
    "Bald Eagle": "Why don't eagles like fast food? Because they can't catch it!",
    "American Robin": "What's a robin's favorite chocolate? Nestle!",
    "Blue Jay": "Why are Blue Jays so good at baseball? They're always stealing!",
    "Northern Cardinal": "Why don't cardinals ever get lost? They always know which way is north!",
}

WISDOM = [
    "Birds sing after every storm. There's always a song waiting after tough times!",
    "Like birds, we all have our own special song to sing.",
    "Every bird has wings, but each flies in their own special way.",
    "Birds teach us that it's good to sing, even on cloudy days.",
    "Just like birds build nests one twig at a time, we can do big things with small steps.",
    "Even the smallest bird can soar high in the sky.",
    "Like birds flying together, we're stronger when we help each other.",
    "Every bird was once in an egg. Great things start small!",
]

CHALLENGES = [
    "Can you make the {bird}'s sound three times today? Try it at breakfast, lunch, and dinner!",
    "Can you spot a bird outside your window today? See if it moves like our {bird} friend!",
    "Can you draw a picture of the {bird} you heard today? Show someone special your artwork!",
    "Can you flap your arms like the {bird}? Count how many flaps you can do!",
]

FUN_FACTS = [
    "Some birds can fly backwards! Hummingbirds are the helicopters of the bird world!",
    "Penguins propose with pebbles! They give a special stone to someone they love!",
    "Owls can't move their eyes, so they turn their heads almost all the way around!",
    "A group of flamingos is called a flamboyance! How fancy!",
    "Some birds can sleep while flying! They take power naps in the clouds!",
    "Woodpeckers can peck twenty times per second! That's faster than you can blink!",
    "Birds are the only animals with feathers. That makes them extra special!",
    "Birds have hollow bones that make them light enough to fly!",
    "The Arctic Tern flies from the North Pole to the South Pole every year!",
]

SEASON_LINES = {
    "spring": [
        "Spring is here, and birds are building their nests!",
        "Listen for baby birds chirping this spring!",
        "Spring brings new bird songs to discover!",
    ],
    "summer": [
        "Summer is perfect for bird watching adventures!",
        "Birds wake up early in summer, just like the sun!",
        "Summer birds are teaching their babies to fly!",
    ],
    "autumn": [
        "Some birds are getting ready for their autumn journey south!",
        "Watch for birds gathering seeds for the colder days ahead!",
        "Fall is here, and birds are preparing for their big adventures!",
    ],
    "winter": [
        "Even in winter, brave birds keep singing their songs!",
        "Winter birds fluff up their feathers like cozy jackets!",
        "Birds huddle together to stay warm in winter!",
    ],
}
HOLIDAY_LINES = [
    "Happy holidays! Birds celebrate by singing extra sweetly!",
    "'Tis the season for bird songs and joy!",
]
MIGRATION_LINES = [
    "It's migration season. Watch for traveling birds!",
    "Birds are on the move during this special migration time!",
]
MIGRATION_MONTHS = (3, 4, 9, 10)


def season_for(day: date) -> str:
    """Northern-hemisphere meteorological season."""
    if 3 <= day.month <= 5:
        return "spring"
    if 6 <= day.month <= 8:
        return "summer"
    if 9 <= day.month <= 11:
        return "autumn"
    return "winter"


def intro_line(day: date) -> str:
    return pick(INTRO_LINES, day, SALT_INTRO_LINE)


def bird_intro(bird_name: str, day: date) -> str:
    return pick(BIRD_INTRO_TEMPLATES, day, SALT_INTRO_LINE).format(bird=bird_name)


def seasonal_line(day: date) -> str:
    lines = list(SEASON_LINES[season_for(day)])
    if day.month == 12 and day.day >= 20:
        lines += HOLIDAY_LINES
    if day.month in MIGRATION_MONTHS:
        lines += MIGRATION_LINES
    return pick(lines, day, SALT_SEASON)


def outro_text(bird_name: str, day: date, day_of_week: Optional[int] = None) -> str:
    """Weekday outro for a bird, with a seasonal line appended."""
    content_type = content_type_for_day(day.weekday() if day_of_week is None else day_of_week)
    if content_type == "joke":
        joke = SPECIFIC_JOKES.get(bird_name) or pick(GENERAL_JOKES, day, SALT_OUTRO_TEXT)
        text = (
            f"Here's today's giggle before you go! [pause] {joke} [long pause] "
            "See you tomorrow for another amazing bird adventure, explorers!"
        )
    elif content_type == "wisdom":
        wisdom = pick(WISDOM, day, SALT_OUTRO_TEXT)
        text = (
            f"Remember, little explorers: [pause] {wisdom} [long pause] "
            f"Think of our {bird_name} friend today and remember to spread your wings! [pause] Until tomorrow!"
        )
    elif content_type == "challenge":
        challenge = pick(CHALLENGES, day, SALT_OUTRO_TEXT).format(bird=bird_name)
        text = (
            f"Your Bird Explorer Challenge: [pause] {challenge} [long pause] "
            "Tomorrow, we'll learn about a new bird together. [pause] Happy exploring!"
        )
    elif content_type == "funfact":
        fact = pick(FUN_FACTS, day, SALT_FACT)
        text = (
            f"Before you go, did you know? [pause] {fact} [long pause] Amazing, right? [pause] "
            "Sweet dreams, and tomorrow we'll discover another incredible bird together!"
        )
    else:
        text = (
            f"Wow, wasn't the {bird_name} amazing? [pause] Tomorrow we'll meet another incredible "
            "feathered friend! [pause] Will it be big or small? [pause] Colorful or camouflaged? [pause] "
            "You'll have to come back to find out! [pause] Keep your ears open for bird songs today, explorers!"
        )
    return f"{text} {seasonal_line(day)}"
